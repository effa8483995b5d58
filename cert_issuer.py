"""Self-signed TLS certificate issuance.

A fresh P-256 key and a self-signed X.509v3 certificate are produced for every
call and written as two PEM files: ``CERTIFICATE`` and ``EC PRIVATE KEY``.
"""

from __future__ import annotations

import ipaddress
import logging
import os
import secrets
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Tuple, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from common import DEFAULT_CERT_FILE, DEFAULT_HOSTS, DEFAULT_KEY_FILE, DEFAULT_ORG, DEFAULT_VALID_DAYS

log = logging.getLogger(__name__)

SERIAL_BITS = 128

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class IssuanceError(Exception):
    """Base class for every failure of a single issuance attempt."""


class KeyGenerationFailed(IssuanceError):
    pass


class SerialNumberGenerationFailed(IssuanceError):
    pass


class NoValidIdentity(IssuanceError):
    pass


class InvalidValidityPeriod(IssuanceError):
    pass


class SigningFailed(IssuanceError):
    pass


class KeyEncodingFailed(IssuanceError):
    pass


class OutputWriteFailed(IssuanceError):
    def __init__(self, path: Union[str, Path], reason: object):
        self.path = str(path)
        super().__init__(f"failed to write {self.path}: {reason}")


@dataclass(frozen=True)
class IssuanceRequest:
    hosts: str = DEFAULT_HOSTS
    cert_path: str = DEFAULT_CERT_FILE
    key_path: str = DEFAULT_KEY_FILE
    organization: str = DEFAULT_ORG
    valid_days: int = DEFAULT_VALID_DAYS


@dataclass(frozen=True)
class IssuedCertificate:
    cert_path: str
    key_path: str
    serial: int
    not_before: datetime
    not_after: datetime
    dns_names: Tuple[str, ...]
    ip_addresses: Tuple[IPAddress, ...]


def split_hosts(hosts: str) -> Tuple[List[str], List[IPAddress]]:
    """Partition a comma-separated host list into DNS names and IP literals.

    Tokens are trimmed and blank ones skipped. A token is an IP entry only if
    the whole of it parses as an IPv4 or IPv6 address; anything else,
    including near-misses such as ``127.0.0.1x`` and zone-qualified IPv6
    (``fe80::1%eth0``, whose zone X.509 cannot carry), stays a DNS name.
    """
    dns_names: List[str] = []
    ip_addresses: List[IPAddress] = []
    for token in hosts.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            ip = ipaddress.ip_address(token)
        except ValueError:
            dns_names.append(token)
            continue
        if getattr(ip, "scope_id", None):
            dns_names.append(token)
        else:
            ip_addresses.append(ip)
    log.debug("classified hosts %r: dns=%s ip=%s", hosts, dns_names, ip_addresses)
    return dns_names, ip_addresses


def _generate_key() -> ec.EllipticCurvePrivateKey:
    try:
        return ec.generate_private_key(ec.SECP256R1())
    except Exception as e:
        raise KeyGenerationFailed(f"failed to generate private key: {e}") from e


def _generate_serial() -> int:
    # X.509 serials must be positive, so draw from [1, 2**128).
    try:
        return secrets.randbelow((1 << SERIAL_BITS) - 1) + 1
    except (OSError, NotImplementedError) as e:
        raise SerialNumberGenerationFailed(f"failed to generate serial number: {e}") from e


def _build_certificate(
    key: ec.EllipticCurvePrivateKey,
    request: IssuanceRequest,
    serial: int,
    not_before: datetime,
    not_after: datetime,
    dns_names: List[str],
    ip_addresses: List[IPAddress],
) -> x509.Certificate:
    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, request.organization),
    ])
    public_key = key.public_key()

    try:
        sans: List[x509.GeneralName] = [x509.DNSName(name) for name in dns_names]
        sans.extend(x509.IPAddress(ip) for ip in ip_addresses)
        return x509.CertificateBuilder().subject_name(
            subject
        ).issuer_name(
            issuer
        ).public_key(
            public_key
        ).serial_number(
            serial
        ).not_valid_before(
            not_before
        ).not_valid_after(
            not_after
        ).add_extension(
            x509.BasicConstraints(ca=True, path_length=None),
            critical=True,
        ).add_extension(
            x509.KeyUsage(
                digital_signature=True,
                key_encipherment=True,
                key_cert_sign=True,
                crl_sign=False,
                content_commitment=False,
                data_encipherment=False,
                key_agreement=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        ).add_extension(
            x509.ExtendedKeyUsage([
                ExtendedKeyUsageOID.SERVER_AUTH,
                ExtendedKeyUsageOID.CLIENT_AUTH,
            ]),
            critical=False,
        ).add_extension(
            x509.SubjectKeyIdentifier.from_public_key(public_key),
            critical=False,
        ).add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(public_key),
            critical=False,
        ).add_extension(
            x509.SubjectAlternativeName(sans),
            critical=False,
        ).sign(key, hashes.SHA256())
    except (ValueError, TypeError) as e:
        raise SigningFailed(f"failed to create certificate: {e}") from e


def encode_certificate(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def encode_private_key(key: ec.EllipticCurvePrivateKey) -> bytes:
    try:
        return key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    except (ValueError, TypeError) as e:
        raise KeyEncodingFailed(f"failed to marshal private key: {e}") from e


def write_pem(path: Union[str, Path], data: bytes, mode: int = 0o644) -> None:
    # temp sibling + rename: readers never see a half-written file
    path = Path(path)
    try:
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    except OSError as e:
        raise OutputWriteFailed(path, e) from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except OSError as e:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise OutputWriteFailed(path, e) from e


def issue(request: IssuanceRequest) -> IssuedCertificate:
    """Generate a key pair and a self-signed certificate, and write both.

    Raises a subclass of :class:`IssuanceError` on failure. Nothing is written
    unless key generation, signing and encoding all succeed; the certificate is
    written before the key, and a failed key write leaves the new certificate
    in place.
    """
    dns_names, ip_addresses = split_hosts(request.hosts)
    if not dns_names and not ip_addresses:
        raise NoValidIdentity(f"no usable host in {request.hosts!r}")
    if request.valid_days <= 0:
        raise InvalidValidityPeriod(f"validity must be a positive number of days, got {request.valid_days}")

    key = _generate_key()
    serial = _generate_serial()

    not_before = datetime.now(timezone.utc).replace(microsecond=0)
    not_after = not_before + timedelta(days=request.valid_days)

    cert = _build_certificate(key, request, serial, not_before, not_after, dns_names, ip_addresses)
    cert_pem = encode_certificate(cert)
    key_pem = encode_private_key(key)

    write_pem(request.cert_path, cert_pem)
    write_pem(request.key_path, key_pem, mode=0o600)

    log.info(
        "issued certificate serial=%x hosts=%s cert=%s key=%s expires=%s",
        serial,
        ",".join(dns_names + [str(ip) for ip in ip_addresses]),
        request.cert_path,
        request.key_path,
        not_after.isoformat(),
    )
    return IssuedCertificate(
        cert_path=str(request.cert_path),
        key_path=str(request.key_path),
        serial=serial,
        not_before=not_before,
        not_after=not_after,
        dns_names=tuple(dns_names),
        ip_addresses=tuple(ip_addresses),
    )
