"""
Outbound proxy detection utilities
"""
import os
import socket

PROXY_ENV_VARS = ('HTTP_PROXY', 'HTTPS_PROXY', 'http_proxy', 'https_proxy')


def _port_open(host: str, port: int, timeout: float) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def get_proxy(preferred_proxy: str = None, ports=(7890, 7897, 10809), timeout: float = 0.3, probe: bool = True):
    """
    Detect and return the proxy URL to use for YouTube and translation calls

    Args:
        preferred_proxy: Explicit proxy URL. If None, checks the environment, then probes local ports.
        ports: Local proxy ports to probe (Clash, Clash mixed, V2Ray defaults)
        timeout: TCP connect timeout per probe in seconds
        probe: Whether to probe local ports at all

    Returns:
        str or None: Proxy URL such as 'http://127.0.0.1:7890', or None for a direct connection
    """
    if preferred_proxy:
        return preferred_proxy

    for name in PROXY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            print(f"Using proxy from environment: {value}")
            return value

    if probe:
        for port in ports:
            if _port_open('127.0.0.1', port, timeout):
                proxy = f"http://127.0.0.1:{port}"
                print(f"Using default proxy: {proxy}")
                return proxy

    print("⚠ Warning: No proxy configured. YouTube access may fail in restricted regions.")
    return None


def resolve_proxy(config):
    """Resolve config.PROXY once and cache the answer on the config"""
    if getattr(config, '_proxy_resolved', False):
        return config.PROXY

    config.PROXY = get_proxy(
        config.PROXY,
        ports=config.DEFAULT_PROXY_PORTS,
        timeout=config.PROXY_PROBE_TIMEOUT,
        probe=config.PROBE_PROXIES,
    )
    config._proxy_resolved = True
    return config.PROXY


def proxies_dict(proxy):
    """requests-style proxies mapping, or None for a direct connection"""
    if not proxy:
        return None
    return {'http': proxy, 'https': proxy}
