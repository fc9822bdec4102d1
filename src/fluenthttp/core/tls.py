"""Opt-in TLS trust bypass.

INSECURE: the context returned here accepts any certificate chain for any
hostname. It exists for talking to hosts with self-signed certificates in
test and lab setups and must never be the default.
"""

import functools
import logging
import ssl

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=None)
def insecure_ssl_context() -> ssl.SSLContext:
    """Process-wide SSL context with certificate and hostname checks disabled."""
    logger.warning("Creating SSL context that skips certificate verification")
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context
