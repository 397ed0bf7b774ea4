from tlspin import chain
from tlspin.trust import PeerTrust, create_ssl_policy


def test_extract_public_key(pki):
    assert chain.extract_public_key(pki.leaf.der) == pki.leaf.spki
    assert chain.extract_public_key(pki.leaf.certificate) == pki.leaf.spki


def test_extract_public_key_ignores_evaluation(pki):
    # hostname mismatch and unknown issuer, the key is still derived
    policy = create_ssl_policy("unrelated.example.com")
    assert chain.extract_public_key(pki.rogue.der, policy=policy) == pki.rogue.spki


def test_extract_public_key_unparsable():
    assert chain.extract_public_key(b"\x30\x03\x02\x01\x00") is None
    assert chain.extract_public_key(b"") is None


def test_certificate_chain_order(pki):
    trust = PeerTrust([pki.leaf.der, pki.intermediate.der, pki.root.der])
    assert chain.certificate_chain(trust) == [
        pki.leaf.der,
        pki.intermediate.der,
        pki.root.der,
    ]


def test_certificate_chain_empty():
    assert chain.certificate_chain(PeerTrust([])) == []


def test_public_key_chain_order(pki):
    trust = PeerTrust([pki.leaf.der, pki.intermediate.der])
    assert chain.public_key_chain(trust) == [pki.leaf.spki, pki.intermediate.spki]


def test_public_key_chain_skips_undecodable(pki):
    trust = PeerTrust([pki.leaf.der, b"not a certificate", pki.intermediate.der])
    assert chain.public_key_chain(trust) == [pki.leaf.spki, pki.intermediate.spki]


def test_public_key_chain_leaves_handle_policy(pki):
    policy = create_ssl_policy("pinned.example.com")
    trust = PeerTrust([pki.leaf.der], policy=policy)
    chain.public_key_chain(trust)
    assert trust.policy is policy
