import logging
from typing import Union

from cryptography.x509 import Certificate
from OpenSSL.crypto import X509

from . import util
from .trust import PeerTrust, BasicX509Policy, create_basic_x509_policy

__module__ = "tlspin.chain"

logger = logging.getLogger(__name__)


def extract_public_key(
    certificate: Union[bytes, X509, Certificate], policy: BasicX509Policy = None
) -> Union[bytes, None]:
    """
    Evaluates a single certificate trust under the policy (basic X.509 when
    omitted) and reads the public key back as SPKI DER bytes. The evaluation
    outcome does not matter, None means no key could be derived.
    """
    try:
        trust = PeerTrust([certificate], policy=policy or create_basic_x509_policy())
        trust.evaluate()
        public_key = trust.copy_public_key()
        if public_key is None:
            return None
        return util.public_key_bytes(public_key)
    except Exception as ex:
        logger.debug(ex, exc_info=True)
    return None


def certificate_chain(trust: PeerTrust) -> list[bytes]:
    return [trust.certificate_at_index(i) for i in range(trust.certificate_count)]


def public_key_chain(trust: PeerTrust) -> list[bytes]:
    policy = create_basic_x509_policy()
    keys = []
    for index in range(trust.certificate_count):
        key = extract_public_key(trust.certificate_at_index(index), policy=policy)
        if key is None:
            logger.debug(f"no public key for certificate at index {index}")
            continue
        keys.append(key)
    return keys
