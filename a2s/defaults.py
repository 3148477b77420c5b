# Seconds to wait for a complete response
DEFAULT_TIMEOUT = 3.0
# Text encoding for strings in responses. None returns raw bytes.
DEFAULT_ENCODING = "utf-8"
# How often a challenge response may be answered before giving up
DEFAULT_RETRIES = 5

DEFAULT_PORT = 27015
