from slowapi import Limiter
from slowapi.util import get_remote_address

# Limits are declared per route; internal callers are keyed by address
limiter = Limiter(key_func=get_remote_address)
