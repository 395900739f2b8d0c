"""Build ``ssl.SSLContext`` objects from descriptor TLS settings."""

import os
import ssl
import tempfile
from typing import Optional, Union

from dal.models import TlsConfig


def build_ssl_context(setting: Union[bool, TlsConfig, None]) -> Optional[ssl.SSLContext]:
    """Return an SSL context for the descriptor setting, or None for plaintext.

    ``True`` encrypts without verifying the server certificate. A ``TlsConfig``
    trusts its CA bundle when given and presents the client cert/key pair when
    both are given. Server certificates are not verified in either case.
    """
    if not setting:
        return None

    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE

    if isinstance(setting, TlsConfig):
        if setting.ca:
            context.load_verify_locations(cadata=setting.ca)
        if setting.cert and setting.key:
            _load_cert_chain_from_pem(context, setting.cert, setting.key)
    return context


def _load_cert_chain_from_pem(context: ssl.SSLContext, cert: str, key: str) -> None:
    # SSLContext.load_cert_chain only reads from paths.
    with tempfile.TemporaryDirectory(prefix="sqlpanel-tls-") as tmp:
        cert_path = os.path.join(tmp, "client.crt")
        key_path = os.path.join(tmp, "client.key")
        with open(cert_path, "w", encoding="utf-8") as fh:
            fh.write(cert)
        with open(key_path, "w", encoding="utf-8") as fh:
            fh.write(key)
        os.chmod(key_path, 0o600)
        context.load_cert_chain(certfile=cert_path, keyfile=key_path)
