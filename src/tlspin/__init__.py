import sys
import logging
from typing import Union

from . import exceptions, util
from .certificate import PinnedCertificate, load_pinned_certificates
from .chain import certificate_chain, public_key_chain, extract_public_key
from .config import load_config, get_config
from .store import PinStore, CertificatePins, PublicKeyPins
from .trust import (
    PeerTrust,
    TrustResult,
    BasicX509Policy,
    SSLPolicy,
    create_basic_x509_policy,
    create_ssl_policy,
)
from .validator import Validator
from .transport import PinnedTransport

__version__ = "1.0.0"
__module__ = "tlspin"

assert sys.version_info >= (3, 9), "Requires Python 3.9 or newer"
logger = logging.getLogger(__name__)


def pinned_validator(
    certificates: list[Union[bytes, PinnedCertificate]],
    use_public_keys: bool = False,
    validated_dn: bool = True,
) -> Validator:
    if not isinstance(certificates, list):
        raise TypeError(
            f"provided an invalid type {type(certificates)} for certificates, expected list"
        )
    pins = [
        cert if isinstance(cert, PinnedCertificate) else PinnedCertificate(cert)
        for cert in certificates
    ]
    return Validator(
        PinStore(pins, use_public_keys=use_public_keys, validated_dn=validated_dn)
    )


def is_valid(
    validator: Validator,
    certificate_chain: list,
    domain: Union[str, None] = None,
) -> bool:
    return validator.is_valid(PeerTrust(certificate_chain), domain)
