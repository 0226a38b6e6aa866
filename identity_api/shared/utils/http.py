# identity_api/shared/utils/http.py

"""
Helpers to read forwarded addresses from incoming requests.
"""

from typing import Optional
from fastapi import Request

X_FORWARDED_HOST = "X-Forwarded-Host"


def _request_address(request: Request, header: str) -> Optional[str]:
    address = request.headers.get(header)
    if not address or not address.strip():
        return None
    return f"{request.url.scheme}://{address.strip()}"


def get_request_host_address(request: Request) -> Optional[str]:
    """Address of the portal the request was made for, from X-Forwarded-Host."""
    return _request_address(request, X_FORWARDED_HOST)
