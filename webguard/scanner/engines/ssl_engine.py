# webguard/scanner/engines/ssl_engine.py
"""
SSL/TLS session collection engine.

Opens a direct TLS connection to host:port on the event loop, completes the
handshake, and extracts the peer certificate and the negotiated session.

Requires: cryptography (x509 DER parsing)

Chain and hostname validation are disabled: with CERT_NONE the stdlib's
getpeercert() returns an empty dict, so the DER form is parsed with
cryptography instead. The minimum protocol version and cipher security level
are lowered so that servers still speaking TLS 1.0/1.1 can be observed:
whether that is acceptable is the SSL analyzer's call, not ours.

What this engine collects:
    - Certificate: validity window, issuer/subject CN and O, serial, DNS SANs
    - Negotiated cipher suite name, protocol version and key bits

What this engine does NOT do:
    - Classify severity (that's the SSL analyzer's job)
    - Probe every protocol version individually
    - Retry
"""

from __future__ import annotations

import asyncio
import logging
import socket
import ssl
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID

from webguard.errors import NetworkError, ProtocolError

logger = logging.getLogger(__name__)

DEFAULT_TLS_PORT = 443
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class CertificateInfo:
    """Parsed view of the peer certificate. Datetimes are timezone-aware UTC."""
    valid_from: datetime
    valid_to: datetime
    issuer_cn: str = ""
    issuer_o: str = ""
    subject_cn: str = ""
    subject_o: str = ""
    serial_number: str = ""
    sans: Tuple[str, ...] = ()

    @property
    def is_self_signed(self) -> bool:
        # Derived, never stored: issuer CN equal to subject CN
        return self.issuer_cn == self.subject_cn

    @property
    def issuer_name(self) -> str:
        return self.issuer_cn or self.issuer_o or "Unknown"


@dataclass(frozen=True)
class CipherInfo:
    """The negotiated session. Only exists after a completed handshake."""
    cipher_name: str
    protocol_version: str
    bits: Optional[int] = None


@dataclass(frozen=True)
class TLSSession:
    certificate: CertificateInfo
    cipher: CipherInfo


# ---------------------------------------------------------------------------
# Certificate parsing
# ---------------------------------------------------------------------------

def _name_attr(name: x509.Name, oid) -> str:
    attrs = name.get_attributes_for_oid(oid)
    return str(attrs[0].value) if attrs else ""


def parse_certificate(der_bytes: bytes) -> CertificateInfo:
    """
    Parse a DER-encoded certificate.

    Raises ProtocolError if the bytes are not a certificate.
    """
    try:
        cert = x509.load_der_x509_certificate(der_bytes)
    except ValueError as e:
        raise ProtocolError(f"Malformed certificate: {e}") from e

    not_before = (
        cert.not_valid_before_utc if hasattr(cert, "not_valid_before_utc")
        else cert.not_valid_before.replace(tzinfo=timezone.utc)
    )
    not_after = (
        cert.not_valid_after_utc if hasattr(cert, "not_valid_after_utc")
        else cert.not_valid_after.replace(tzinfo=timezone.utc)
    )

    sans: Tuple[str, ...] = ()
    try:
        san_ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        sans = tuple(san_ext.value.get_values_for_type(x509.DNSName))
    except x509.ExtensionNotFound:
        pass

    return CertificateInfo(
        valid_from=not_before,
        valid_to=not_after,
        issuer_cn=_name_attr(cert.issuer, NameOID.COMMON_NAME),
        issuer_o=_name_attr(cert.issuer, NameOID.ORGANIZATION_NAME),
        subject_cn=_name_attr(cert.subject, NameOID.COMMON_NAME),
        subject_o=_name_attr(cert.subject, NameOID.ORGANIZATION_NAME),
        serial_number=format(cert.serial_number, "X"),
        sans=sans,
    )


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------

def create_tls_context() -> ssl.SSLContext:
    """Client context that accepts any certificate and legacy protocols."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    # We want to see the cert even if it's invalid; the analyzer decides severity
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE

    try:
        context.minimum_version = ssl.TLSVersion.MINIMUM_SUPPORTED
        context.set_ciphers("ALL:@SECLEVEL=0")
    except (ValueError, ssl.SSLError) as e:
        logger.debug(f"Could not relax TLS policy, keeping library defaults: {e}")

    return context


async def _close(writer: asyncio.StreamWriter, timeout: float) -> None:
    writer.close()
    try:
        await asyncio.wait_for(writer.wait_closed(), timeout=timeout)
    except (asyncio.TimeoutError, OSError, ssl.SSLError) as e:
        logger.debug(f"TLS connection did not close cleanly: {e}")


async def fetch_tls_session(
    host: str,
    port: int = DEFAULT_TLS_PORT,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> TLSSession:
    """
    Connect to host:port over TLS and return the certificate and session.

    Raises:
        NetworkError:  DNS failure, connection refused/reset, timeout.
        ProtocolError: Handshake failure, or no/malformed peer certificate.
    """
    context = create_tls_context()
    logger.debug(f"TLS connect {host}:{port} (timeout={timeout}s)")

    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(
                host, port, ssl=context, server_hostname=host,
                ssl_handshake_timeout=timeout,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise NetworkError(f"Timeout after {timeout:g}s connecting to {host}:{port}") from e
    except ssl.SSLError as e:
        raise ProtocolError(f"TLS handshake with {host}:{port} failed: {e}") from e
    except ConnectionRefusedError as e:
        raise NetworkError(f"Connection refused by {host}:{port}") from e
    except socket.gaierror as e:
        raise NetworkError(f"Could not resolve {host}: {e}") from e
    except OSError as e:
        raise NetworkError(f"Connection to {host}:{port} failed: {e}") from e

    try:
        ssl_object = writer.get_extra_info("ssl_object")
        if ssl_object is None:
            raise ProtocolError(f"No TLS session established with {host}:{port}")
        der_cert = ssl_object.getpeercert(binary_form=True)
        cipher = ssl_object.cipher()
        protocol = ssl_object.version()
    finally:
        await _close(writer, timeout)

    if not der_cert:
        raise ProtocolError(f"{host}:{port} presented no certificate")

    certificate = parse_certificate(der_cert)
    session = CipherInfo(
        cipher_name=cipher[0] if cipher else "unknown",
        protocol_version=protocol or (cipher[1] if cipher else "unknown"),
        bits=cipher[2] if cipher and len(cipher) > 2 else None,
    )

    logger.debug(
        f"TLS {host}:{port} → {session.protocol_version} {session.cipher_name}, "
        f"subject CN={certificate.subject_cn!r}"
    )
    return TLSSession(certificate=certificate, cipher=session)
