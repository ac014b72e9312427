"""Shared fixtures: generated certificates and fake HTTP transports."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


def _name(cn: str, org: Optional[str] = None) -> x509.Name:
    attrs = [x509.NameAttribute(NameOID.COMMON_NAME, cn)]
    if org:
        attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, org))
    return x509.Name(attrs)


def build_certificate(
    subject_cn: str = "localhost",
    issuer_cn: Optional[str] = None,
    issuer_o: Optional[str] = None,
    not_before: Optional[datetime] = None,
    not_after: Optional[datetime] = None,
    sans: Tuple[str, ...] = (),
) -> Tuple[x509.Certificate, ec.EllipticCurvePrivateKey]:
    """A certificate signed by its own key; issuer defaults to the subject."""

    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(subject_cn))
        .issuer_name(_name(issuer_cn or subject_cn, issuer_o))
        .public_key(key.public_key())
        .serial_number(0x1F2E3D)
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
    )
    if sans:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(s) for s in sans]),
            critical=False,
        )
    return builder.sign(key, hashes.SHA256()), key


@pytest.fixture
def make_certificate() -> Callable[..., Tuple[x509.Certificate, ec.EllipticCurvePrivateKey]]:
    return build_certificate


@pytest.fixture
def tls_files(tmp_path) -> Tuple[str, str]:
    """PEM cert + key for a self-signed "localhost" server certificate."""

    cert, key = build_certificate(subject_cn="localhost")
    cert_path = tmp_path / "server.pem"
    key_path = tmp_path / "server.key"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return str(cert_path), str(key_path)


def headers_transport(headers: Dict[str, str], status_code: int = 200) -> httpx.MockTransport:
    """Every request answers with the same status and headers."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, headers=headers)

    return httpx.MockTransport(handler)


def failing_transport(message: str = "connection refused") -> httpx.MockTransport:
    """Every request fails to connect."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError(message, request=request)

    return httpx.MockTransport(handler)


class FakeWriter:
    """Stands in for the StreamWriter of an accepted connection."""

    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None
