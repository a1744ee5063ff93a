from __future__ import annotations

import logging
import os
import ssl

logger = logging.getLogger(__name__)


def fix_ssl_env() -> None:
    """Drop or repair SSL_CERT_FILE/SSL_CERT_DIR when they point nowhere.

    A stale SSL_CERT_FILE is replaced by the certifi bundle when certifi is
    importable; a stale SSL_CERT_DIR is removed.
    """
    cert_file = os.environ.get("SSL_CERT_FILE")
    if cert_file and not os.path.exists(cert_file):
        try:
            import certifi

            os.environ["SSL_CERT_FILE"] = certifi.where()
            logger.info(f"SSL_CERT_FILE {cert_file!r} missing; using certifi bundle")
        except ImportError:
            os.environ.pop("SSL_CERT_FILE", None)
            logger.info(f"SSL_CERT_FILE {cert_file!r} missing; unset")
    cert_dir = os.environ.get("SSL_CERT_DIR")
    if cert_dir and not os.path.isdir(cert_dir):
        os.environ.pop("SSL_CERT_DIR", None)
        logger.info(f"SSL_CERT_DIR {cert_dir!r} missing; unset")


def make_ssl_context() -> ssl.SSLContext:
    """TLS context for brokerage requests.

    Prefers the OS trust store, then the certifi bundle, then Python's defaults.
    """
    try:
        import truststore

        return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    except Exception as e:
        logger.debug(f"truststore unavailable: {e}")
    try:
        import certifi

        return ssl.create_default_context(cafile=certifi.where())
    except Exception as e:
        logger.debug(f"certifi unavailable: {e}")
    return ssl.create_default_context()
