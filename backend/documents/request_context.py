"""
Caller metadata captured from the inbound request for audit records,
and the origin used to build signing links.
"""

from dataclasses import dataclass
from urllib.parse import urlsplit

UNKNOWN = 'unknown'


@dataclass(frozen=True)
class RequestContext:
    ip_address: str = UNKNOWN
    user_agent: str = UNKNOWN

    @classmethod
    def from_request(cls, request):
        """Extract client IP and user agent; both default to 'unknown'."""
        if request is None:
            return cls()
        meta = request.META
        return cls(
            ip_address=get_client_ip(request) or UNKNOWN,
            user_agent=meta.get('HTTP_USER_AGENT') or UNKNOWN,
        )


def get_client_ip(request):
    """Extract client IP from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip


def resolve_origin(request, default_origin):
    """
    Origin for externally visible links: the declared Origin header,
    then the scheme and host of the Referer, then the configured default.
    """
    if request is not None:
        origin = request.META.get('HTTP_ORIGIN')
        if origin:
            return origin.rstrip('/')
        referer = urlsplit(request.META.get('HTTP_REFERER', ''))
        if referer.scheme and referer.netloc:
            return f'{referer.scheme}://{referer.netloc}'
    return default_origin.rstrip('/')
