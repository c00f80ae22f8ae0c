"""
Constants for the AllPlayers client library.
"""

# Signed request headers (header mode)
HEADER_HMAC = "hmac"
HEADER_TIME = "time"
HEADER_USER = "user"
HEADER_AGENT = "agent"

# Signed request body fields (body mode)
BODY_DATA = "data"

# Signing modes
SIGN_HEADER = "header"
SIGN_BODY = "body"
SIGN_MODES = (SIGN_HEADER, SIGN_BODY)

# User identity sent when no specific user is authenticated
ANONYMOUS_USER = "anonymous"

# REST endpoint prefix shared by www and the store
ENDPOINT = "/api/v1/rest"

# Default configuration values
DEFAULT_CONFIG = {
    'timeout': 30,                 # HTTP timeout in seconds
    'endpoint': ENDPOINT,          # Appended to the base URL
    'post_sign_mode': SIGN_HEADER, # How POST requests are signed
}

# Date formats accepted by the API (UTC)
DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%dT%H:%M:00"

# Pagination
ALL_PAGES = "*"
DEFAULT_PAGESIZE = 10
STORE_PRODUCTS_PAGESIZE = 20
