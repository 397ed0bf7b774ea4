import pytest
from tlspin import exceptions


def test_openssl_errno():
    openssl_errno = 18
    with pytest.raises(exceptions.ValidationError) as err:
        raise exceptions.ValidationError(openssl_errno=openssl_errno)
    assert err.value.openssl_errno == openssl_errno
    assert str(err.value) == exceptions.X509_MESSAGES[openssl_errno]


def test_message_with_errno():
    err = exceptions.ValidationError("pin mismatch", openssl_errno=62)
    assert str(err) == "pin mismatch\n" + exceptions.X509_MESSAGES[62]


def test_unknown_errno():
    err = exceptions.ValidationError("pin mismatch", openssl_errno=999)
    assert str(err) == "pin mismatch"


def test_transport_error():
    with pytest.raises(ConnectionError):
        raise exceptions.TransportError(
            exceptions.VALIDATION_ERROR_TLS_FAILED.format(host="example.com", port=443)
        )
