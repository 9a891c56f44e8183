"""Reverse-proxy awareness for cookie security and request logging."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Wrap the WSGI app in :class:`~werkzeug.middleware.proxy_fix.ProxyFix`.

    Parameters
    ----------
    app: flask.Flask
        Application deployed behind ``PROXY_HOPS`` trusted proxies.

    Notes
    -----
    ``Secure`` refresh cookies and the ``remote_addr`` recorded on auth events
    both depend on the scheme and client address forwarded by the proxy.
    Disabled with ``USE_PROXYFIX=False`` (the testing default).
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXY_HOPS", 1))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_prefix=hops)
