import logging

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from certcli import config

log = logging.getLogger(__name__)


def generate_key(key_bits=None):
    key_bits = key_bits or config.KEY_BITS
    log.debug("generating %d-bit RSA key", key_bits)
    return rsa.generate_private_key(public_exponent=config.PUBLIC_EXPONENT, key_size=key_bits)


def key_bytes(key, encoding=serialization.Encoding.PEM):
    # PKCS#1 ("RSA PRIVATE KEY") for RSA keys, unencrypted
    return key.private_bytes(
        encoding=encoding,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
