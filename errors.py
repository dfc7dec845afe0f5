"""
Launcher Errors
Exception hierarchy shared by the chain, strategy and API layers
"""


class LaunchError(Exception):
    """Base class for all launcher errors"""


class ConfigError(LaunchError):
    """Invalid or incomplete configuration"""


class AccountInitError(LaunchError):
    """Private key material could not be turned into a managed account"""


class ArityMismatchError(LaunchError):
    """Address and transaction lists have different lengths"""

    def __init__(self, addresses: int, intents: int):
        super().__init__(
            f"Number of accounts ({addresses}) must match number of transactions ({intents})"
        )
        self.addresses = addresses
        self.intents = intents


class GasEstimationError(LaunchError):
    """Gas limit estimation or gas price lookup failed"""


class SubmissionError(LaunchError):
    """Transaction could not be signed or submitted"""

    def __init__(self, message: str, address: str = None):
        super().__init__(message)
        self.address = address


class ConfirmationTimeoutError(LaunchError):
    """Transaction was not confirmed within the configured timeout"""

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"Transaction {tx_hash} not confirmed after {timeout}s")
        self.tx_hash = tx_hash
        self.timeout = timeout


class TokenCreationError(LaunchError):
    """Token creation transaction failed or produced no usable address"""


class UnsupportedStrategyError(LaunchError):
    """Unknown launch strategy type"""


class LaunchAbortedError(LaunchError):
    """Launch aborted by the anti-sniper countermeasure"""

    def __init__(self, detected_buyers: int, threshold: int):
        super().__init__(
            f"Launch aborted due to excessive sniper activity "
            f"({detected_buyers} external buyers, threshold {threshold})"
        )
        self.detected_buyers = detected_buyers
        self.threshold = threshold


class TokenAddressTimeoutError(LaunchError):
    """Token address never became available from the platform API"""

    def __init__(self, token_id, attempts: int):
        super().__init__(f"Token address for token {token_id} not available after {attempts} attempts")
        self.token_id = token_id
        self.attempts = attempts


class PlatformAPIError(LaunchError):
    """Token platform API returned an error or could not be reached"""

    def __init__(self, message: str, code: int = None):
        super().__init__(message)
        self.code = code
