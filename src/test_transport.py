from unittest.mock import MagicMock, patch

import pytest
from OpenSSL import SSL
from OpenSSL.crypto import FILETYPE_ASN1, load_certificate

from tlspin import exceptions, pinned_validator
from tlspin.transport import PinnedTransport

HOST = "pinned.example.com"


def mock_connection(*ders):
    conn = MagicMock()
    conn.get_peer_cert_chain.return_value = [
        load_certificate(FILETYPE_ASN1, der) for der in ders
    ]
    conn.getpeername.return_value = ("192.0.2.10", 443)
    conn.get_protocol_version_name.return_value = "TLSv1.3"
    return conn


@pytest.fixture
def validator(pki):
    return pinned_validator([pki.leaf.der, pki.intermediate.der])


@pytest.fixture
def no_socket():
    with patch.object(PinnedTransport, "prepare_socket", return_value=MagicMock()):
        yield


def test_pinned_peer(pki, validator, no_socket):
    conn = mock_connection(pki.leaf.der, pki.intermediate.der)
    with patch("tlspin.transport.SSL.Connection", return_value=conn):
        transport = PinnedTransport(HOST, validator)
        assert transport.connect() is True
    conn.connect.assert_called_once_with((HOST, 443))
    conn.set_tlsext_host_name.assert_called_once_with(HOST.encode())
    conn.shutdown.assert_called_once()
    conn.close.assert_called_once()
    assert transport.verified is True
    assert transport.peer_address == "192.0.2.10"
    assert transport.negotiated_protocol == "TLSv1.3"
    assert transport.certificate_chain == [pki.leaf.der, pki.intermediate.der]


def test_without_sni(pki, validator, no_socket):
    conn = mock_connection(pki.leaf.der, pki.intermediate.der)
    with patch("tlspin.transport.SSL.Connection", return_value=conn):
        assert PinnedTransport(HOST, validator).connect(use_sni=False) is True
    conn.set_tlsext_host_name.assert_not_called()


def test_pin_mismatch_aborts(pki, validator, no_socket):
    conn = mock_connection(pki.rogue.der)
    with patch("tlspin.transport.SSL.Connection", return_value=conn):
        transport = PinnedTransport(HOST, validator)
        with pytest.raises(exceptions.ValidationError):
            transport.connect()
    conn.shutdown.assert_not_called()
    conn.close.assert_called_once()
    assert transport.verified is False


def test_hostname_mismatch_aborts(pki, validator, no_socket):
    conn = mock_connection(pki.leaf.der, pki.intermediate.der)
    with patch("tlspin.transport.SSL.Connection", return_value=conn):
        with pytest.raises(exceptions.ValidationError):
            PinnedTransport("evil.example.com", validator).connect()


def test_connection_refused(validator, no_socket):
    conn = MagicMock()
    conn.connect.side_effect = ConnectionRefusedError("refused")
    with patch("tlspin.transport.SSL.Connection", return_value=conn):
        with pytest.raises(exceptions.TransportError):
            PinnedTransport(HOST, validator, port=8443).connect()
    conn.close.assert_called_once()


def test_handshake_failure(validator, no_socket):
    conn = MagicMock()
    conn.do_handshake.side_effect = SSL.Error("handshake failure")
    with patch("tlspin.transport.SSL.Connection", return_value=conn):
        with pytest.raises(exceptions.TransportError):
            PinnedTransport(HOST, validator).connect()
    conn.close.assert_called_once()


def test_shutdown_error_is_ignored(pki, validator, no_socket):
    conn = mock_connection(pki.leaf.der, pki.intermediate.der)
    conn.shutdown.side_effect = SSL.Error("peer went away")
    with patch("tlspin.transport.SSL.Connection", return_value=conn):
        assert PinnedTransport(HOST, validator).connect() is True
    conn.close.assert_called_once()


def test_bad_port(validator):
    with pytest.raises(TypeError):
        PinnedTransport(HOST, validator, port="443")


def test_bad_domain(validator):
    with pytest.raises(ValueError):
        PinnedTransport("not a domain", validator)


def test_bad_validator():
    with pytest.raises(TypeError):
        PinnedTransport(HOST, validator=None)


def test_prepare_context(validator):
    ctx = PinnedTransport(HOST, validator).prepare_context()
    assert isinstance(ctx, SSL.Context)
    assert ctx.get_verify_mode() == SSL.VERIFY_NONE
