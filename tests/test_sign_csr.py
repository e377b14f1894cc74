from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from certcli import sign_csr as sign_csr_module
from certcli.cert_name import CertName
from certcli.errors import InputError, InvalidSignatureError, NotACAError, VerificationError
from certcli.generate_ca import new_ca_cert
from certcli.generate_key import generate_key
from certcli.request_csr import new_generated_csr
from certcli.sign_csr import CertType, issue_certificate, sign_csr
from certcli.validity import add_months
from certcli.verify_cert import verify_signed_by


def load_ca(ca_files):
    cert_path, key_path = ca_files
    ca_cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
    ca_key = serialization.load_pem_private_key(key_path.read_bytes(), password=None)
    return ca_cert, ca_key


def test_sign_server_cert(ca_files, csr_files):
    cert_der, common_name = sign_csr(csr_files[0], *ca_files)
    cert = x509.load_der_x509_certificate(cert_der)
    ca_cert, _ = load_ca(ca_files)

    assert common_name == "www.example.com"
    assert cert.issuer == ca_cert.subject
    verify_signed_by(cert, ca_cert)

    assert not cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
    usage = cert.extensions.get_extension_for_class(x509.KeyUsage).value
    assert usage.digital_signature and not usage.key_cert_sign
    ext_usage = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    assert set(ext_usage) == {ExtendedKeyUsageOID.CLIENT_AUTH, ExtendedKeyUsageOID.SERVER_AUTH}

    san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert san.get_values_for_type(x509.DNSName) == ["www.example.com", "example.com"]

    expected_end = add_months(cert.not_valid_before_utc, 3)
    assert abs(cert.not_valid_after_utc - expected_end) < timedelta(seconds=2)


def test_subject_serial_replaced(ca_files, csr_files):
    cert = x509.load_der_x509_certificate(sign_csr(csr_files[0], *ca_files)[0])
    serials = cert.subject.get_attributes_for_oid(NameOID.SERIAL_NUMBER)
    assert [attr.value for attr in serials] == [str(cert.serial_number)]
    assert cert.subject.get_attributes_for_oid(NameOID.ORGANIZATION_NAME)[0].value == "Test Org"


def test_sign_client_cert(tmp_path, ca_files, name):
    csr_path = tmp_path / "alice.csr"
    csr_path.write_bytes(new_generated_csr("alice", name, is_client=True)[0])

    cert = x509.load_der_x509_certificate(sign_csr(csr_path, *ca_files, CertType.CLIENT)[0])

    ext_usage = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    assert list(ext_usage) == [ExtendedKeyUsageOID.CLIENT_AUTH]
    validity = cert.not_valid_after_utc - cert.not_valid_before_utc
    assert abs(validity - timedelta(days=30)) < timedelta(seconds=2)


def test_sub_ca_can_issue(tmp_path, ca_files, name):
    sub_csr, sub_key = new_generated_csr("intermediate", name, sans=["intermediate.example.com"])
    sub_csr_path = tmp_path / "intermediate.csr"
    sub_csr_path.write_bytes(sub_csr)
    sub_cert_der, _ = sign_csr(sub_csr_path, *ca_files, CertType.CA)

    sub_cert = x509.load_der_x509_certificate(sub_cert_der)
    assert sub_cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
    assert sub_cert.extensions.get_extension_for_class(x509.KeyUsage).value.key_cert_sign
    validity = sub_cert.not_valid_after_utc - sub_cert.not_valid_before_utc
    assert timedelta(days=180) <= validity <= timedelta(days=185)

    # DER cert and DER key straight from the previous steps
    sub_cert_path = tmp_path / "intermediate.cer"
    sub_key_path = tmp_path / "intermediate.key"
    sub_cert_path.write_bytes(sub_cert_der)
    sub_key_path.write_bytes(sub_key)

    leaf_csr_path = tmp_path / "leaf.csr"
    leaf_csr_path.write_bytes(new_generated_csr("leaf", name, sans=["leaf.example.com"])[0])
    leaf = x509.load_der_x509_certificate(sign_csr(leaf_csr_path, sub_cert_path, sub_key_path)[0])
    verify_signed_by(leaf, sub_cert)

    aki = leaf.extensions.get_extension_for_class(x509.AuthorityKeyIdentifier).value
    ski = sub_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
    assert aki.key_identifier == ski.digest


def test_rejects_non_ca_issuer(tmp_path, ca_files, csr_files):
    leaf_path = tmp_path / "leaf.cer"
    leaf_path.write_bytes(sign_csr(csr_files[0], *ca_files)[0])

    with pytest.raises(NotACAError, match="is not a CA cert"):
        sign_csr(csr_files[0], leaf_path, csr_files[1])


def test_rejects_mismatched_ca_key(ca_files, csr_files):
    with pytest.raises(InputError, match="does not match"):
        sign_csr(csr_files[0], ca_files[0], csr_files[1])


def test_rejects_tampered_csr(tmp_path, ca_files, csr_files):
    der = bytearray(csr_files[0].read_bytes())
    # last byte belongs to the signature bit string
    der[-1] ^= 0x01
    tampered = tmp_path / "tampered.csr"
    tampered.write_bytes(bytes(der))
    assert not x509.load_der_x509_csr(bytes(der)).is_signature_valid

    with pytest.raises(InvalidSignatureError):
        sign_csr(tampered, *ca_files)


def test_issued_cert_must_verify(ca_files, csr_files, monkeypatch):
    ca_cert, _ = load_ca(ca_files)
    impostor_key = generate_key()
    now = datetime.now(timezone.utc)
    # same subject as the real CA, different key
    impostor = (
        x509.CertificateBuilder()
        .subject_name(ca_cert.subject)
        .issuer_name(ca_cert.subject)
        .public_key(impostor_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(impostor_key, hashes.SHA256())
    )
    monkeypatch.setattr(sign_csr_module, "verify_signed_by", lambda cert, _ca: verify_signed_by(cert, impostor))

    with pytest.raises(VerificationError, match="unable to verify CA signature"):
        sign_csr(csr_files[0], *ca_files)


def test_missing_file_is_named(tmp_path, ca_files):
    missing = tmp_path / "nope.csr"
    with pytest.raises(InputError, match="nope.csr"):
        sign_csr(missing, *ca_files)


def test_garbage_csr(tmp_path, ca_files):
    bad = tmp_path / "bad.csr"
    bad.write_bytes(b"not a csr")
    with pytest.raises(InputError, match="failed to parse CSR"):
        sign_csr(bad, *ca_files)


def test_ca_without_subject_key_identifier(tmp_path, csr_files):
    # hand-built CA lacking SKI still yields an AKI from its public key
    key = generate_key()
    subject = CertName().to_x509_name("bare-ca")
    now = datetime.now(timezone.utc)
    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    csr = x509.load_der_x509_csr(csr_files[0].read_bytes())
    cert = issue_certificate(csr, ca_cert, key, CertType.SERVER)
    verify_signed_by(cert, ca_cert)
    cert.extensions.get_extension_for_class(x509.AuthorityKeyIdentifier)


def test_pem_inputs_accepted(tmp_path, ca_files, csr_files):
    csr = x509.load_der_x509_csr(csr_files[0].read_bytes())
    pem_csr = tmp_path / "www.csr.pem"
    pem_csr.write_bytes(csr.public_bytes(serialization.Encoding.PEM))
    _, common_name = sign_csr(pem_csr, *ca_files)
    assert common_name == "www.example.com"


def test_new_ca_is_issuer_for_certs(name, tmp_path):
    cert_pem, key_pem = new_ca_cert("other", name)
    (tmp_path / "other.cer").write_bytes(cert_pem)
    (tmp_path / "other.key").write_bytes(key_pem)
    csr_path = tmp_path / "x.csr"
    csr_path.write_bytes(new_generated_csr("x", name, sans=["x.example"])[0])

    cert = x509.load_der_x509_certificate(sign_csr(csr_path, tmp_path / "other.cer", tmp_path / "other.key")[0])
    assert cert.issuer.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "other"
