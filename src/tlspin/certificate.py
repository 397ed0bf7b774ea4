import logging
from pathlib import Path
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.x509 import Certificate, load_pem_x509_certificates
from cryptography.hazmat.primitives.serialization import Encoding
from OpenSSL.crypto import X509

from . import util, constants

__module__ = "tlspin.certificate"

logger = logging.getLogger(__name__)


class PinnedCertificate:
    """
    One pin, either the raw DER certificate or an already extracted public
    key. The key form is derived lazily from the certificate bytes and kept
    once known, so it is never computed twice.
    """

    def __init__(
        self,
        data: Union[bytes, X509, Certificate, None] = None,
        key=None,
    ) -> None:
        if data is None and key is None:
            raise ValueError("PinnedCertificate requires certificate data or a key")
        self._der: Union[bytes, None] = None if data is None else util.to_der(data)
        self._key: Union[bytes, None] = None
        if key is not None:
            try:
                self._key = util.public_key_bytes(key)
            except (ValueError, UnsupportedAlgorithm) as ex:
                # kept as an entry without a usable form, the store drops it
                logger.debug(ex, exc_info=True)

    @classmethod
    def from_pem(cls, pem: Union[str, bytes]) -> list["PinnedCertificate"]:
        if isinstance(pem, str):
            pem = pem.encode()
        if constants.PEM_PUBLIC_KEY_MARKER in pem:
            return [cls(key=pem)]
        try:
            certs = load_pem_x509_certificates(pem)
        except (ValueError, UnsupportedAlgorithm) as ex:
            logger.warning(f"unable to decode PEM certificates: {ex}")
            # the raw PEM never parses as DER, the store drops it
            return [cls(data=pem)]
        return [cls(data=cert.public_bytes(Encoding.DER)) for cert in certs]

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> list["PinnedCertificate"]:
        data = Path(file_path).read_bytes()
        if (
            constants.PEM_CERTIFICATE_MARKER in data
            or constants.PEM_PUBLIC_KEY_MARKER in data
        ):
            return cls.from_pem(data)
        if Path(file_path).suffix.lower() == ".pub":
            return [cls(key=data)]
        # DER is only parsed when the store needs it, bad bytes get dropped there
        return [cls(data=data)]

    @property
    def der(self) -> Union[bytes, None]:
        return self._der

    @property
    def key(self) -> Union[bytes, None]:
        return self._key

    @key.setter
    def key(self, value) -> None:
        self._key = None if value is None else util.public_key_bytes(value)

    @property
    def sha256_fingerprint(self) -> Union[str, None]:
        if self._der is None:
            return None
        return util.sha256_fingerprint(self._der)

    @property
    def spki_fingerprint(self) -> Union[str, None]:
        if self._key is None:
            return None
        return util.sha256_fingerprint(self._key)

    def __repr__(self) -> str:
        return f"PinnedCertificate(sha256={self.sha256_fingerprint}, spki={self.spki_fingerprint})"


def load_pinned_certificates(
    paths: list[str], suffixes: list[str] = None
) -> list[PinnedCertificate]:
    pins = []
    for file_path in util.filter_valid_files(paths, suffixes):
        try:
            loaded = PinnedCertificate.from_file(file_path)
        except OSError as ex:
            logger.warning(f"unable to read pinned certificate {file_path}: {ex}")
            continue
        logger.debug(f"loaded {len(loaded)} pins from {file_path}")
        pins.extend(loaded)
    return pins
