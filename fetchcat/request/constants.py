"""HTTP constants for the request executor.

Centralizes status ranges, media types and streaming defaults used across
the request modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300

# Request methods
METHOD_GET = "GET"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_PATCH = "PATCH"
METHOD_DELETE = "DELETE"

# Header names and media types
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_USER_AGENT = "User-Agent"
HEADER_ACCEPT_ENCODING = "Accept-Encoding"
TYPE_JSON = "application/json"
TYPE_FORM_URLENCODED = "application/x-www-form-urlencoded"

# Encodings the transport decodes on its own
DEFAULT_ACCEPT_ENCODING = "gzip, deflate"

# Marker for "no response size limit"
UNBOUNDED_SIZE = -1

# Chunk size for streaming reads
DEFAULT_CHUNK_SIZE = 8192

# Used when max_redirects() receives a negative value
DEFAULT_MAX_REDIRECTS = 20
