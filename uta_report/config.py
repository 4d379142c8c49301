# ==========================================
# 0. REPORT FILE NAMING
# ==========================================

# Bybit "Asset Change Details" exports for the Unified Trading Account.
# Matched case-insensitively against the stripped file name.
REPORT_FILE_PREFIX = 'Bybit_AssetChangeDetails_uta_'
REPORT_FILE_SUFFIX = '.csv'

# ==========================================
# 1. CURRENCY SETTINGS
# ==========================================

# Settlement currencies. Contract suffixes are tested in this order,
# so the longer 'USDC'/'USDT' win over 'USD'.
QUOTE_CURRENCIES = [
    'USDC',
    'USDT',
    'USD'
]

# Quote assumed when a contract carries none of the suffixes above
DEFAULT_QUOTE_CURRENCY = 'USDT'

# Currency all fee figures are expressed in
FEE_QUOTE_CURRENCY = 'USDT'

# Quantities and prices at or below this are treated as absent
EPSILON = 1e-12

# ==========================================
# 2. HEADER DETECTION
# ==========================================

# Number of leading rows searched for the real header
HEADER_SCAN_LIMIT = 30

# Minimum number of signals (out of 4) a header row must show
HEADER_SCORE_THRESHOLD = 3

# Normalised keys behind each header signal
HEADER_SIGNALS = {
    'account_id': ['uid', 'userid'],
    'asset': ['coin', 'asset', 'currency'],
    'quantity': ['qty', 'amount', 'quantity'],
}

# Any normalised key containing this counts as a date column
HEADER_DATE_FRAGMENT = 'date'

# ==========================================
# 3. COLUMN ROLES
# ==========================================

# Role -> ordered list of normalised header names.
# The first candidate present in the header wins.
COLUMN_CANDIDATES = {
    'time': ['dateandtimeutc', 'datetimeutc', 'datetime', 'date', 'time'],
    'symbol': ['asset', 'coin', 'currency', 'symbol'],
    'category': ['type', 'category', 'side'],
    'account': ['account', 'accounttype', 'wallet', 'chain', 'status'],
    'qty': ['qty', 'quantity'],
    'amount': ['amount', 'qty', 'quantity'],
    'revenue': ['revenue', 'income', 'pnl', 'realizedpnl', 'realizedpl', 'profit'],
    'cost': ['cost', 'fee', 'fees', 'commission', 'tradingfee'],
    'relieved': ['relieved', 'released', 'settled', 'realized'],
    'unrelieved': [
        'unrelieved',
        'unreleased',
        'unsettled',
        'unrealized',
        'unrealizedpnl',
        'unrealizedpl'
    ]
}

# Roles carrying an explicit monetary breakdown
EXPLICIT_METRIC_ROLES = ['revenue', 'cost', 'relieved', 'unrelieved']

# ==========================================
# 4. RAW FIELD NAMES
# ==========================================

# Exact header text of the export (case-sensitive, spacing included)
FIELD_TYPE = 'Type'
FIELD_DIRECTION = 'Direction'
FIELD_SIDE = 'Side'
FIELD_CURRENCY = 'Currency'
FIELD_CONTRACT = 'Contract'
FIELD_SYMBOL = 'Symbol'
FIELD_QUANTITY = 'Quantity'
FIELD_FILLED_PRICE = 'Filled Price'
FIELD_FEE_PAID = 'Fee Paid'
FIELD_FUNDING = 'Funding'
FIELD_CHANGE = 'Change'
FIELD_WALLET_BALANCE = 'Wallet Balance'

# ==========================================
# 5. TRANSACTION TYPES
# ==========================================
TYPE_TRADE = 'TRADE'
TYPE_SETTLEMENT = 'SETTLEMENT'
TYPE_FEE_REFUND = 'FEE_REFUND'

SIDE_BUY = 'BUY'
SIDE_SELL = 'SELL'
