import logging
import hashlib
from ipaddress import ip_address
from pathlib import Path
from typing import Union

import validators
from cryptography import x509
from cryptography.x509 import Certificate, Name, extensions
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
    load_der_public_key,
    load_pem_public_key,
)
from OpenSSL import SSL
from OpenSSL.crypto import X509, FILETYPE_ASN1, dump_certificate
from retry.api import retry

from . import constants

__module__ = "tlspin.util"

logger = logging.getLogger(__name__)


def to_der(certificate: Union[bytes, X509, Certificate]) -> bytes:
    if isinstance(certificate, X509):
        return dump_certificate(FILETYPE_ASN1, certificate)
    if isinstance(certificate, Certificate):
        return certificate.public_bytes(Encoding.DER)
    if isinstance(certificate, (bytes, bytearray, memoryview)):
        return bytes(certificate)
    raise TypeError(
        f"provided an invalid type {type(certificate)} for certificate, expected bytes, X509 or Certificate"
    )


def public_key_bytes(public_key) -> bytes:
    """
    Canonical form used for every key comparison, DER SubjectPublicKeyInfo.
    Accepts a cryptography public key, SPKI DER bytes or a PEM PUBLIC KEY block.
    """
    if isinstance(public_key, (bytes, bytearray, memoryview)):
        data = bytes(public_key)
        if constants.PEM_PUBLIC_KEY_MARKER in data:
            public_key = load_pem_public_key(data)
        else:
            public_key = load_der_public_key(data)
    return public_key.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)


def sha256_fingerprint(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def str_n_split(input: str, n: int = 2, delimiter: str = " "):
    if not isinstance(input, str):
        return input
    return delimiter.join(
        [input[i : i + n] for i in range(0, len(input), n)]  # noqa: E203
    )


def filter_valid_files(inputs: list[str], suffixes: list[str] = None) -> list[Path]:
    """Expands directories one level deep, keeping files that carry a pin suffix"""
    if suffixes is None:
        suffixes = constants.PIN_FILE_SUFFIXES
    ret = []
    for test in inputs:
        file_path = Path(test).expanduser()
        if file_path.is_dir():
            ret.extend(
                sorted(
                    p
                    for p in file_path.iterdir()
                    if p.is_file() and p.suffix.lower() in suffixes
                )
            )
            continue
        if file_path.is_file():
            ret.append(file_path)
            continue
        logger.warning(f"pinned certificate path {test} does not exist")
    return ret


def from_subject(subject: Name, field: str = "commonName") -> Union[str, None]:
    for fields in subject:
        current = str(fields.oid)
        if field in current:
            return fields.value
    return None


def get_san(cert: Certificate) -> list:
    san = []
    try:
        san = cert.extensions.get_extension_for_class(
            x509.SubjectAlternativeName
        ).value.get_values_for_type(x509.DNSName)
    except extensions.ExtensionNotFound as ex:
        logger.debug(ex, exc_info=True)
    return sorted(san)


def validate_common_name(common_name: str, host: str) -> bool:
    if not isinstance(common_name, str):
        raise ValueError("invalid certificate_common_name provided")
    if not isinstance(host, str):
        raise ValueError("invalid host provided")
    common_name = common_name.lower()
    host = host.lower()
    if common_name.startswith("*."):
        common_name_suffix = common_name.replace("*.", "")
        if validators.domain(common_name_suffix) is not True:
            return False
        if not host.endswith(f".{common_name_suffix}"):
            return False
        # remove suffix, only subdomain remains
        subdomain = host[: -len(common_name_suffix)].strip(".")
        return "." not in subdomain
    return common_name == host


def get_ip_san(cert: Certificate) -> list:
    try:
        return cert.extensions.get_extension_for_class(
            x509.SubjectAlternativeName
        ).value.get_values_for_type(x509.IPAddress)
    except extensions.ExtensionNotFound as ex:
        logger.debug(ex, exc_info=True)
    return []


def match_hostname(host: str, cert: Certificate) -> bool:
    if not isinstance(host, str):
        raise ValueError("invalid host provided")
    if not isinstance(cert, Certificate):
        raise ValueError("invalid Certificate provided")
    try:
        address = ip_address(host)
    except ValueError:
        address = None
    if address is not None:
        # IP literals only match iPAddress SAN entries, never DNS names or the CN
        return address in get_ip_san(cert)
    if validators.domain(host) is not True:
        raise ValueError(f"provided an invalid domain {host}")
    certificate_san = get_san(cert)
    if not certificate_san:
        common_name = from_subject(cert.subject)
        return bool(common_name) and validate_common_name(common_name, host)
    return any(validate_common_name(san, host) for san in certificate_san)


def server_auth_permitted(cert: Certificate) -> bool:
    try:
        ext_key_usage = cert.extensions.get_extension_for_class(
            extensions.ExtendedKeyUsage
        ).value
    except extensions.ExtensionNotFound as ex:
        logger.debug(ex, exc_info=True)
        return True
    return any(
        usage.dotted_string
        in [constants.SERVER_AUTH_OID, constants.ANY_EXTENDED_KEY_USAGE_OID]
        for usage in ext_key_usage
    )


@retry(SSL.WantReadError, tries=3, delay=0.5)
def do_handshake(conn: SSL.Connection):
    conn.do_handshake()
