import asyncio
import ipaddress
import socket
from enum import Enum, auto
from typing import Union
from urllib.parse import urlparse

from app.config.settings import config


class UrlValidationResult(Enum):
    """URL validation result without throwing exceptions"""
    OK = auto()
    BLOCKED = auto()
    INVALID = auto()


class SecurityValidator:
    """
    Validate outbound URLs without throwing exceptions.
    Returns result enum for separation of concerns.
    """

    @staticmethod
    def _is_blocked(ip: Union[ipaddress.IPv4Address, ipaddress.IPv6Address]) -> bool:
        if ip.is_loopback:
            return not config.security.allow_localhost
        if ip.is_link_local or ip.is_multicast or ip.is_unspecified:
            return True
        if ip.is_private:
            return not config.security.allow_private_ips
        return False

    @staticmethod
    async def validate_url(url: str) -> UrlValidationResult:
        """
        Validate URL against SSRF attacks.
        DNS resolution runs in a worker thread so the event loop stays free.
        """
        if not config.security.enable_ssrf_protection:
            return UrlValidationResult.OK

        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
        except ValueError:
            return UrlValidationResult.INVALID

        if parsed.scheme not in ("http", "https") or not hostname:
            return UrlValidationResult.INVALID

        try:
            addr_info = await asyncio.to_thread(socket.getaddrinfo, hostname, None)
        except socket.gaierror:
            # Unresolvable here: the fetch itself will fail
            return UrlValidationResult.OK

        for info in addr_info:
            try:
                ip = ipaddress.ip_address(info[4][0].split("%")[0])
            except ValueError:
                continue
            if SecurityValidator._is_blocked(ip):
                return UrlValidationResult.BLOCKED

        return UrlValidationResult.OK
