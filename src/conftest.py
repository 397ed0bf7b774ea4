from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from ipaddress import ip_address, IPv4Address, IPv6Address

import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID, ExtendedKeyUsageOID
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
)


@dataclass
class Issued:
    der: bytes
    key: ec.EllipticCurvePrivateKey
    certificate: x509.Certificate

    @property
    def spki(self) -> bytes:
        return self.key.public_key().public_bytes(
            Encoding.DER, PublicFormat.SubjectPublicKeyInfo
        )

    @property
    def pem(self) -> bytes:
        return self.certificate.public_bytes(Encoding.PEM)


@dataclass
class Pki:
    root: Issued
    intermediate: Issued
    leaf: Issued
    other_leaf: Issued
    reissued_leaf: Issued
    rogue: Issued
    expired_leaf: Issued
    client_leaf: Issued
    ip_leaf: Issued


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def issue(
    common_name: str,
    issuer: Issued = None,
    ca: bool = False,
    san: list = None,
    key: ec.EllipticCurvePrivateKey = None,
    usages: list = None,
    not_before: datetime = None,
    not_after: datetime = None,
) -> Issued:
    now = datetime.now(timezone.utc)
    key = key or ec.generate_private_key(ec.SECP256R1())
    issuer_name = issuer.certificate.subject if issuer else _name(common_name)
    signing_key = issuer.key if issuer else key
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(common_name))
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(key.public_key()),
            critical=False,
        )
    )
    if issuer:
        builder = builder.add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(
                issuer.key.public_key()
            ),
            critical=False,
        )
    if ca:
        builder = builder.add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
    else:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage(usages or [ExtendedKeyUsageOID.SERVER_AUTH]),
            critical=False,
        )
    if san:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(
                [
                    x509.IPAddress(name)
                    if isinstance(name, (IPv4Address, IPv6Address))
                    else x509.DNSName(name)
                    for name in san
                ]
            ),
            critical=False,
        )
    certificate = builder.sign(signing_key, hashes.SHA256())
    return Issued(
        der=certificate.public_bytes(Encoding.DER), key=key, certificate=certificate
    )


@pytest.fixture(scope="session")
def pki() -> Pki:
    now = datetime.now(timezone.utc)
    root = issue("tlspin Test Root", ca=True)
    intermediate = issue("tlspin Test Intermediate", issuer=root, ca=True)
    leaf = issue(
        "pinned.example.com",
        issuer=intermediate,
        san=["pinned.example.com", "*.api.example.com"],
    )
    other_leaf = issue(
        "other.example.com", issuer=intermediate, san=["other.example.com"]
    )
    rogue_ca = issue("tlspin Rogue CA", ca=True)
    # same key as the leaf, certified by somebody else
    reissued_leaf = issue(
        "pinned.example.com",
        issuer=rogue_ca,
        san=["pinned.example.com"],
        key=leaf.key,
    )
    rogue = issue("pinned.example.com", san=["pinned.example.com"])
    expired_leaf = issue(
        "expired.example.com",
        issuer=intermediate,
        san=["expired.example.com"],
        not_before=now - timedelta(days=30),
        not_after=now - timedelta(days=1),
    )
    client_leaf = issue(
        "client.example.com",
        issuer=intermediate,
        san=["client.example.com"],
        usages=[ExtendedKeyUsageOID.CLIENT_AUTH],
    )
    ip_leaf = issue(
        "internal.example.com",
        issuer=intermediate,
        san=[
            "internal.example.com",
            ip_address("10.0.0.1"),
            ip_address("2001:db8::1"),
        ],
    )
    return Pki(
        root=root,
        intermediate=intermediate,
        leaf=leaf,
        other_leaf=other_leaf,
        reissued_leaf=reissued_leaf,
        rogue=rogue,
        expired_leaf=expired_leaf,
        client_leaf=client_leaf,
        ip_leaf=ip_leaf,
    )
