# webguard/scanner/analyzers/ssl_analyzer.py
"""
SSL/TLS Analyzer.

Inspects the transport security of the target. For plain-HTTP targets it
checks whether the host redirects to HTTPS; for HTTPS targets it opens a TLS
session through the SSL engine and inspects the certificate and the
negotiated cipher.

Checks performed:
    CRITICAL:
        - Site not using HTTPS
        - Certificate not yet valid
        - Certificate expired
    HIGH:
        - No HTTP → HTTPS redirect (or a redirect elsewhere)
        - Self-signed certificate (issuer CN == subject CN)
        - Subject CN does not match the hostname
        - TLS 1.0 / 1.1 (or SSLv2/SSLv3) negotiated
    MEDIUM:
        - Certificate expires within 30 days
        - Weak cipher suite negotiated
    INFO:
        - Validity window, issuer, subject and protocol summary
"""

from __future__ import annotations

import ipaddress
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

import httpx

from webguard.config import ScanConfig
from webguard.errors import WebGuardError
from webguard.netguard import ensure_public_host
from webguard.scanner.base import (
    AnalyzerReport,
    BaseAnalyzer,
    CheckResult,
    Finding,
    Note,
    ReportItem,
    ScanTarget,
    now_utc,
)
from webguard.scanner.engines.http_engine import fetch
from webguard.scanner.engines.ssl_engine import (
    CertificateInfo,
    CipherInfo,
    TLSSession,
    fetch_tls_session,
)

logger = logging.getLogger(__name__)

CATEGORY = "tls"

TRUSTED_CAS = ("Let's Encrypt", "DigiCert", "Comodo", "GeoTrust", "GlobalSign", "Sectigo")

WEAK_PROTOCOLS = frozenset({"SSLv2", "SSLv3", "TLSv1", "TLSv1.1"})
SECURE_PROTOCOLS = frozenset({"TLSv1.2", "TLSv1.3"})

# Substrings of OpenSSL / IANA cipher names, matched upper-cased
WEAK_CIPHERS = ("RC4", "RC2", "DES", "NULL", "EXPORT", "EXP-", "ANON", "ADH", "AECDH", "MD5")

TLSFetcher = Callable[..., Awaitable[TLSSession]]


def _finding(severity: str, message: str) -> Finding:
    return Finding(severity=severity, category=CATEGORY, message=message)


def _date(value: datetime) -> str:
    return value.strftime("%a %b %d %Y")


# ---------------------------------------------------------------------------
# Certificate checks
# ---------------------------------------------------------------------------

def evaluate_validity(
    cert: CertificateInfo,
    now: datetime,
    warning_days: int = 30,
) -> List[ReportItem]:
    if now < cert.valid_from:
        return [
            CheckResult("Certificate Status", "Not yet valid", False),
            _finding("critical", f"Certificate is not valid until {_date(cert.valid_from)}"),
        ]

    if now > cert.valid_to:
        return [
            CheckResult("Certificate Status", "Expired", False),
            _finding("critical", f"Certificate expired on {_date(cert.valid_to)}"),
        ]

    days = (cert.valid_to - now).days
    items: List[ReportItem] = [
        CheckResult("Certificate Status", "Valid", True),
        Note(f"Valid until: {_date(cert.valid_to)} ({days} days remaining)"),
    ]
    if days < warning_days:
        items.append(_finding("medium", f"Certificate expires soon ({days} days). Renew it."))
    return items


def is_trusted_issuer(cert: CertificateInfo) -> bool:
    return any(ca in cert.issuer_cn or ca in cert.issuer_o for ca in TRUSTED_CAS)


def evaluate_issuer(cert: CertificateInfo) -> List[ReportItem]:
    items: List[ReportItem] = [CheckResult("Certificate Issuer", cert.issuer_name, True)]

    if cert.is_self_signed:
        items.append(_finding(
            "high", "Certificate is self-signed. Browsers will show security warnings."
        ))
    elif is_trusted_issuer(cert):
        items.append(Note("Issued by a recognized Certificate Authority"))
    return items


def hostname_matches(common_name: str, hostname: str) -> bool:
    """
    Exact match, or a `*.domain` wildcard whose domain is a suffix of the host.

    Names compare case-insensitively (DNS names are case-insensitive) and the
    wildcard suffix must start at a label boundary, so "badexample.com" does
    not match "*.example.com". Multi-label hosts are accepted under a wildcard
    ("a.b.example.com" matches "*.example.com"), which is looser than RFC 6125.
    """
    cn = common_name.lower()
    host = hostname.lower().rstrip(".")
    if cn == host:
        return True
    if cn.startswith("*."):
        return host.endswith("." + cn[2:])
    return False


def plain_http_url(hostname: str) -> str:
    """http://<host> with no path; IPv6 literals are bracketed."""
    try:
        if ipaddress.ip_address(hostname).version == 6:
            return f"http://[{hostname}]"
    except ValueError:
        pass
    return f"http://{hostname}"


def evaluate_subject(cert: CertificateInfo, hostname: str) -> List[ReportItem]:
    if not cert.subject_cn:
        return [CheckResult("Certificate Subject", "No common name", False)]

    items: List[ReportItem] = [CheckResult("Certificate Subject", cert.subject_cn, True)]
    if hostname_matches(cert.subject_cn, hostname):
        items.append(Note("Certificate matches hostname"))
    else:
        items.append(_finding(
            "high",
            f"Certificate CN ({cert.subject_cn}) does not match hostname ({hostname})",
        ))
    return items


def is_weak_cipher(cipher_name: str) -> bool:
    upper = cipher_name.upper()
    return any(marker in upper for marker in WEAK_CIPHERS)


def evaluate_cipher(cipher: CipherInfo) -> List[ReportItem]:
    protocol = cipher.protocol_version
    items: List[ReportItem] = [
        CheckResult("Cipher Suite", cipher.cipher_name, True),
        Note(f"Protocol: {protocol}"),
    ]
    if cipher.bits:
        items.append(Note(f"Key size: {cipher.bits} bits"))

    if protocol in WEAK_PROTOCOLS:
        items.append(_finding(
            "high", f"Weak TLS version detected ({protocol}). Upgrade to TLS 1.2 or 1.3"
        ))
    elif protocol in SECURE_PROTOCOLS:
        items.append(Note(f"TLS version is secure ({protocol})"))

    if is_weak_cipher(cipher.cipher_name):
        items.append(_finding(
            "medium",
            f"Weak cipher suite negotiated ({cipher.cipher_name}). "
            f"Disable legacy ciphers on the server.",
        ))
    return items


def evaluate_session(
    session: TLSSession,
    hostname: str,
    now: datetime,
    warning_days: int = 30,
) -> List[ReportItem]:
    """All certificate and cipher items for one TLS session, in display order."""
    cert = session.certificate
    return (
        evaluate_validity(cert, now, warning_days)
        + evaluate_issuer(cert)
        + evaluate_subject(cert, hostname)
        + evaluate_cipher(session.cipher)
    )


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class SSLAnalyzer(BaseAnalyzer):
    """
    HTTPS targets: one TLS session, inspected in full.
    HTTP targets:  a critical finding plus the redirect probe, then stop.
    """

    failure_prefix = "SSL/TLS connection failed"

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        tls_fetcher: TLSFetcher = fetch_tls_session,
        clock: Callable[[], datetime] = now_utc,
    ):
        super().__init__(config)
        self.transport = transport
        self.tls_fetcher = tls_fetcher
        self.clock = clock

    @property
    def name(self) -> str:
        return "tls"

    async def analyze(self, target: ScanTarget, report: AnalyzerReport) -> None:
        if not target.is_https:
            report.add_result("HTTPS", "Not used", False)
            report.add_finding("critical", "Site is not using HTTPS. All traffic is unencrypted!")
            report.extend(await self._check_https_redirect(target.host))
            return

        report.add_result("HTTPS", "Enabled", True)

        if self.config.block_private_targets:
            await ensure_public_host(target.host)

        session = await self.tls_fetcher(
            target.host, target.effective_port, timeout=self.config.tls_timeout,
        )
        report.extend(evaluate_session(
            session, target.host, self.clock(), self.config.expiry_warning_days,
        ))

        logger.info(
            f"TLS analysis of {target.host}:{target.effective_port}: "
            f"{session.cipher.protocol_version}, {len(report.findings)} findings"
        )

    async def _check_https_redirect(self, hostname: str) -> List[ReportItem]:
        """Does http://<host> answer with a redirect to an https:// URL?"""
        url = plain_http_url(hostname)
        try:
            response = await fetch(
                url,
                timeout=self.config.http_timeout,
                follow_redirects=False,
                user_agent=self.config.user_agent,
                transport=self.transport,
                block_private=self.config.block_private_targets,
            )
        except WebGuardError as e:
            logger.debug(f"Redirect probe of {url} failed: {e}")
            response = None

        if response is not None and response.is_redirect:
            location = response.header("location") or ""
            if location.startswith("https://"):
                return [CheckResult("HTTP → HTTPS Redirect", "Present", True)]
            return [
                CheckResult("HTTP → HTTPS Redirect", "Incorrect", False),
                _finding("high", "HTTP redirect exists but does not redirect to HTTPS"),
            ]

        return [
            CheckResult("HTTP → HTTPS Redirect", "Not configured", False),
            _finding(
                "high",
                "No automatic redirect from HTTP to HTTPS. Users may browse insecurely.",
            ),
        ]
