import io
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from certcli import config
from certcli.cert_name import CertName
from certcli.generate_ca import new_ca_cert
from certcli.request_csr import new_generated_csr

TEST_KEY_BITS = 1024

NAME_ANSWERS = "KR\nTest Org\nPlatform\n1 Main St\nGangnam\nSeoul\n06000\ny\n"


@pytest.fixture(autouse=True)
def small_keys(monkeypatch):
    monkeypatch.setattr(config, "KEY_BITS", TEST_KEY_BITS)


@pytest.fixture
def name():
    return CertName(country="KR", organization="Test Org", locality="Gangnam", province="Seoul")


@pytest.fixture
def name_stdin(monkeypatch):
    """Feeds one accepted round of name details to sys.stdin."""
    monkeypatch.setattr("sys.stdin", io.StringIO(NAME_ANSWERS))


@pytest.fixture
def ca_files(tmp_path, name):
    cert_pem, key_pem = new_ca_cert("testca", name)
    cert_path = tmp_path / "testca.cer"
    key_path = tmp_path / "testca.key"
    cert_path.write_bytes(cert_pem)
    key_path.write_bytes(key_pem)
    return cert_path, key_path


@pytest.fixture
def csr_files(tmp_path, name):
    csr_der, key_der = new_generated_csr("www.example.com", name, sans=["www.example.com", "example.com"])
    csr_path = tmp_path / "www.csr"
    key_path = tmp_path / "www.key"
    csr_path.write_bytes(csr_der)
    key_path.write_bytes(key_der)
    return csr_path, key_path


@pytest.fixture
def ec_ca_files(tmp_path):
    """P-256 CA certificate and PKCS#8 key, both PEM."""
    key = ec.generate_private_key(ec.SECP256R1())
    subject = CertName(country="KR", organization="EC Org").to_x509_name("ecca")
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    cert_path = tmp_path / "ecca.cer"
    key_path = tmp_path / "ecca.key"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ))
    return cert_path, key_path
