from __future__ import annotations
from typing import Any, Optional

# ========================================
#           ADDRESS HELPERS
# ========================================
"""
Helpers used when building the endpoint URL and when reporting the local
transport address that goes into every outbound Message.
"""

def is_hostport(s: str) -> bool:
    """
    Accepts 'hostname:port', 'A.B.C.D:port' or '[v6]:port'.

    Validates that:
    - String contains a colon
    - Port is a valid integer between 1 and 65535
    - Hostname is non-empty

    Examples: "localhost:8080", "192.168.1.5:8080", "[::1]:8080"
    """
    try:
        if ':' not in s:
            return False
        host, port_s = s.rsplit(':', 1)  # rsplit so bracketed IPv6 hosts keep their colons
        if not host:  # Empty hostname
            return False
        if ':' in host and not (host.startswith('[') and host.endswith(']')):
            return False
        if not port_s.isdigit():
            return False
        port = int(port_s)
        return 0 < port <= 65535
    except ValueError:
        return False


def format_socket_addr(sockname: Optional[Any]) -> str:
    """
    Render a socket name the way peers expect to see it in 'src_addr'.

    ('127.0.0.1', 5000)          -> '127.0.0.1:5000'
    ('::1', 5000, 0, 0)          -> '[::1]:5000'
    None / unknown shapes        -> ''
    """
    if not sockname:
        return ""
    if isinstance(sockname, str):
        return sockname
    host, port = sockname[0], sockname[1]
    if ':' in str(host):
        return f"[{host}]:{port}"
    return f"{host}:{port}"
