"""
Constants for the sweep client.
"""

# Network configuration
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
HELIUS_RPC_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={api_key}"
DEFAULT_BIRDEYE_BASE_URL = "https://public-api.birdeye.so"
DEFAULT_JUPITER_PRICE_URL = "https://price.jup.ag/v4/price"
DEFAULT_JUPITER_QUOTE_URL = "https://quote-api.jup.ag/v6/quote"
DEFAULT_TOKEN_LIST_URL = "https://token.jup.ag/all"

DEFAULT_TIMEOUT = 30.0
DEFAULT_PRICE_PROBE_TIMEOUT = 10.0
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRIES = 0
DEFAULT_COMMITMENT = "confirmed"
DEFAULT_CONFIRM_TIMEOUT = 60.0
DEFAULT_CONFIRM_POLL_INTERVAL = 0.8
DEFAULT_METADATA_CACHE_TTL = 3600.0

# Ledger programs
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# Token program instruction indexes
CLOSE_ACCOUNT_INDEX = 9
TRANSFER_CHECKED_INDEX = 12
BURN_CHECKED_INDEX = 15
# Associated token account program: CreateIdempotent
CREATE_IDEMPOTENT_INDEX = 1

# Amounts
NATIVE_DECIMALS = 9
DEFAULT_FEE_BUFFER_LAMPORTS = 10_000
TOKEN_ACCOUNT_SIZE = 165
MAX_U64 = 2**64 - 1

# Pricing
NATIVE_PRICE_KEY = "NATIVE"
NATIVE_SYMBOL = "SOL"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDC_DECIMALS = 6
QUOTE_SLIPPAGE_BPS = 50

# RPC limits
MAX_MULTIPLE_ACCOUNTS = 100

# Monitoring status markers
SUCCESS_STATUS_CODE = 200
ERROR_STATUS_CODE = 500
