"""
TLS material loading.

The listener wraps accepted sockets with the context built here. Loading
happens once at startup; a missing or unparsable key/certificate raises,
which stops the server before it binds.
"""

import logging
import ssl

from ..config import ServerConfig


logger = logging.getLogger(__name__)


def create_tls_context(cert_file: str, key_file: str) -> ssl.SSLContext:
    """
    Build a server-side TLS context from PEM files.

    Args:
        cert_file: PEM certificate chain (leaf first).
        key_file: PEM private key matching the leaf certificate.

    Returns:
        Context for SSLContext.wrap_socket(..., server_side=True).

    Raises:
        FileNotFoundError: A file does not exist.
        ssl.SSLError: The files cannot be parsed or do not match.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.load_cert_chain(certfile=cert_file, keyfile=key_file)

    logger.info(f"Loaded TLS certificate {cert_file}")
    return context


def tls_context_from_config(config: ServerConfig):
    """The TLS context for config, or None when TLS is off."""
    if not config.tls_enabled:
        return None
    return create_tls_context(config.tls_cert, config.tls_key)
