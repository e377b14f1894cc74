import logging

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

from certcli import extensions
from certcli.errors import InputError
from certcli.generate_key import generate_key, key_bytes

log = logging.getLogger(__name__)


def check_alt_names(sans, ip_addresses, is_client):
    if is_client and (sans or ip_addresses):
        raise InputError("No SAN or IP is allowed for client authentication")
    if not is_client and not (sans or ip_addresses):
        raise InputError("At least one IP and/or SAN must be specified")


def new_generated_csr(common_name, name, sans=(), ip_addresses=(), is_client=False, key_bits=None):
    """Returns a DER encoded CSR and the matching DER encoded PKCS#1 private key."""
    check_alt_names(sans, ip_addresses, is_client)

    key = generate_key(key_bits)

    builder = x509.CertificateSigningRequestBuilder().subject_name(name.to_x509_name(common_name))
    san = extensions.subject_alternative_name(sans, ip_addresses)
    if san is not None:
        builder = builder.add_extension(san, critical=False)
    csr = builder.sign(key, hashes.SHA256())
    log.debug("created CSR CN=%s sans=%s ips=%s", common_name, list(sans), list(ip_addresses))

    return csr.public_bytes(serialization.Encoding.DER), key_bytes(key, serialization.Encoding.DER)
