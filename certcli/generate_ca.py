"""
Self-signed root CA certificate and key generation.
"""
import logging

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

from certcli import config, extensions
from certcli.generate_key import generate_key, key_bytes
from certcli.serial import generate_serial_number
from certcli.validity import expiration_months, now

log = logging.getLogger(__name__)


def new_ca_cert(common_name, name, expiration=None, sans=(), ip_addresses=(), key_bits=None):
    """
    Create a self-signed CA certificate for `common_name`.

    `name` is a CertName with the remaining subject details. Returns the PEM
    encoded certificate and the PEM encoded PKCS#1 private key.
    """
    # 1. key pair
    key = generate_key(key_bits)

    # 2. subject == issuer, carrying the serial as serialNumber
    serial = generate_serial_number()
    subject = issuer = name.to_x509_name(common_name, serial_number=serial)

    not_before = now()
    not_after = expiration or expiration_months(config.CA_MONTHS, not_before)

    # 3. certificate template
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(extensions.key_usage(key_cert_sign=True), critical=True)
        .add_extension(extensions.extended_key_usage(), critical=False)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
    )
    san = extensions.subject_alternative_name(sans, ip_addresses)
    if san is not None:
        builder = builder.add_extension(san, critical=False)

    # 4. self-sign
    cert = builder.sign(private_key=key, algorithm=hashes.SHA256())
    log.debug("created CA cert CN=%s serial=%d valid until %s", common_name, serial, not_after)

    return cert.public_bytes(serialization.Encoding.PEM), key_bytes(key)
