"""
Token Platform API Client
Authentication, image upload and token creation against the launch platform REST API
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional
import httpx
from aiolimiter import AsyncLimiter
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

from config import (
    Config, DEFAULT_HEADERS, LOGIN_MESSAGE_TEMPLATE, NETWORK_CODE, VERIFY_TYPE_LOGIN, WALLET_NAME
)
from errors import PlatformAPIError, TokenAddressTimeoutError

logger = logging.getLogger(__name__)

_TIMEOUT = httpx.Timeout(connect=5.0, read=30.0, write=30.0, pool=5.0)


@dataclass
class TokenCreateRequest:
    """Token metadata submitted to the platform"""
    name: str
    symbol: str
    decimals: int
    total_supply: str
    description: str
    logo_url: str
    telegram: Optional[str] = None
    twitter: Optional[str] = None
    website: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the platform's request body"""
        payload = {
            'tokenName': self.name,
            'tokenSymbol': self.symbol,
            'decimals': self.decimals,
            'totalSupply': str(self.total_supply),
            'description': self.description,
            'logoUrl': self.logo_url,
        }
        if self.telegram:
            payload['tgLink'] = self.telegram
        if self.twitter:
            payload['xLink'] = self.twitter
        if self.website:
            payload['websiteLink'] = self.website
        return payload


@dataclass
class TokenCreateResult:
    """Signed creation payload returned by the platform"""
    token_id: str
    create_arg: str
    signature: str
    token_address: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "TokenCreateResult":
        if not isinstance(data, dict) or data.get('tokenId') is None:
            raise PlatformAPIError(f"Token creation response is missing tokenId: {data!r}")

        return cls(
            token_id=str(data['tokenId']),
            create_arg=data.get('createArg', ''),
            signature=data.get('signature', ''),
            token_address=data.get('tokenAddress') or None
        )


class PlatformClient:
    """Async client for the token platform API"""

    def __init__(self, config: Config, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.endpoints = config.api_endpoints
        self.limiter = AsyncLimiter(max(1, config.api_requests_per_second), 1)

        self._client = client or httpx.AsyncClient(timeout=_TIMEOUT)
        self._owns_client = client is None

        self.access_token: Optional[str] = None
        self.headers: Dict[str, str] = dict(DEFAULT_HEADERS)

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def set_access_token(self, token: str) -> None:
        """Use a previously issued access token"""
        self.access_token = token
        self.headers = {
            **self.headers,
            'meme-web-access': token,
            'cookie': f"meme-web-access={token}; user_token={token}",
        }

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, endpoint: str, action: str, **kwargs: Any) -> Any:
        """Send a request and unwrap the {code, msg, data} envelope"""
        headers = kwargs.pop('headers', self.headers)

        async with self.limiter:
            try:
                response = await self._client.request(
                    method, self.endpoints[endpoint], headers=headers, **kwargs
                )
                response.raise_for_status()
                body = response.json()
            except (httpx.HTTPError, ValueError) as e:
                raise PlatformAPIError(f"Failed to {action}: {e}") from e

        if not isinstance(body, dict):
            raise PlatformAPIError(f"Failed to {action}: unexpected response {body!r}")

        code = body.get('code')
        if code != 0:
            raise PlatformAPIError(f"Failed to {action}: {body.get('msg')}", code=code)

        return body.get('data')

    def _require_auth(self) -> None:
        if not self.is_authenticated:
            raise PlatformAPIError("Not authenticated. Please login first.")

    async def generate_nonce(self, address: str) -> str:
        """Request a one-time login nonce for an address"""
        return await self._request('POST', 'nonce', "generate nonce", json={
            'accountAddress': address,
            'verifyType': VERIFY_TYPE_LOGIN,
            'networkCode': NETWORK_CODE,
        })

    async def login(self, signer: LocalAccount) -> str:
        """Sign in with the wallet and store the access token"""
        nonce = await self.generate_nonce(signer.address)

        message = encode_defunct(text=LOGIN_MESSAGE_TEMPLATE.format(nonce=nonce))
        signature = signer.sign_message(message).signature.hex()
        if not signature.startswith('0x'):
            signature = '0x' + signature

        token = await self._request('POST', 'login', "login", json={
            'region': 'WEB',
            'langType': 'EN',
            'loginIp': '',
            'inviteCode': '',
            'verifyInfo': {
                'address': signer.address,
                'networkCode': NETWORK_CODE,
                'signature': signature,
                'verifyType': VERIFY_TYPE_LOGIN,
            },
            'walletName': WALLET_NAME,
        })

        self.set_access_token(token)
        logger.info("Authenticated with token platform")
        return token

    async def get_user_info(self) -> Dict[str, Any]:
        self._require_auth()
        return await self._request('GET', 'user_info', "get user info")

    async def upload_image(self, image_path: str) -> str:
        """Upload a logo image and return its URL"""
        self._require_auth()

        if not os.path.isfile(image_path):
            raise PlatformAPIError(f"Image file not found: {image_path}")

        # httpx sets the multipart content type itself
        headers = {k: v for k, v in self.headers.items() if k.lower() != 'content-type'}

        with open(image_path, 'rb') as image:
            data = await self._request(
                'POST', 'upload', "upload image",
                headers=headers,
                files={'file': (os.path.basename(image_path), image)}
            )

        url = data['url'] if isinstance(data, dict) else data
        logger.info(f"Image uploaded: {url}")
        return url

    async def create_token(self, request: TokenCreateRequest) -> TokenCreateResult:
        """Register the token and obtain the signed creation payload"""
        self._require_auth()
        data = await self._request('POST', 'create', "create token", json=request.to_payload())

        result = TokenCreateResult.from_response(data)
        logger.info(f"Token {request.symbol} registered with ID {result.token_id}")
        return result

    async def get_token_details(self, token_id: str) -> Dict[str, Any]:
        self._require_auth()
        return await self._request('GET', 'details', "get token details", params={'id': token_id})

    async def wait_for_token_address(self, token_id: str, attempts: int, interval: float) -> str:
        """Poll token details until the contract address is published"""
        for attempt in range(1, attempts + 1):
            try:
                details = await self.get_token_details(token_id)
                address = details.get('address') if isinstance(details, dict) else None
                if address:
                    return address
            except PlatformAPIError as e:
                logger.warning(f"Token details lookup failed (attempt {attempt}/{attempts}): {e}")

            if attempt < attempts:
                await asyncio.sleep(interval)

        raise TokenAddressTimeoutError(token_id, attempts)
