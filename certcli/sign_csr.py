"""
Issue certificates by signing CSRs with a CA key.
"""
import enum
import logging

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ed448, ed25519
from cryptography.x509.oid import NameOID

from certcli import config, extensions
from certcli.cert_format import load_certificate, load_csr, load_private_key, read_file
from certcli.errors import InputError, InvalidSignatureError, NotACAError
from certcli.serial import generate_serial_number
from certcli.validity import expiration_days, expiration_months, now
from certcli.verify_cert import verify_signed_by

log = logging.getLogger(__name__)


class CertType(enum.Enum):
    SERVER = "server"
    CLIENT = "client"
    CA = "ca"


def _validity_end(cert_type, start):
    if cert_type is CertType.SERVER:
        return expiration_months(config.SERVER_MONTHS, start)
    if cert_type is CertType.CLIENT:
        return expiration_days(config.CLIENT_DAYS, start)
    return expiration_months(config.SUB_CA_MONTHS, start)


def _usage_extensions(cert_type):
    """(extension, critical) pairs for the requested certificate class."""
    if cert_type is CertType.SERVER:
        return [
            (x509.BasicConstraints(ca=False, path_length=None), True),
            (extensions.key_usage(), True),
            (extensions.extended_key_usage(), False),
        ]
    if cert_type is CertType.CLIENT:
        return [
            (x509.BasicConstraints(ca=False, path_length=None), True),
            (extensions.key_usage(), True),
            (extensions.extended_key_usage(server_auth=False), False),
        ]
    if cert_type is CertType.CA:
        return [
            (x509.BasicConstraints(ca=True, path_length=None), True),
            (extensions.key_usage(key_cert_sign=True), True),
            (extensions.extended_key_usage(), False),
        ]
    raise ValueError(f"unknown certificate type {cert_type!r}")


def _signing_hash(key):
    if isinstance(key, (ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
        return None
    return hashes.SHA256()


def _authority_key_identifier(ca_cert):
    try:
        ski = ca_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
    except x509.ExtensionNotFound:
        return x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_cert.public_key())
    return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski)


def _public_key_der(public_key):
    return public_key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)


def issue_certificate(csr, ca_cert, ca_key, cert_type) -> x509.Certificate:
    """Build, sign and check a certificate for `csr`."""
    if not extensions.is_ca(ca_cert):
        raise NotACAError("certificate is not a CA cert")
    if _public_key_der(ca_key.public_key()) != _public_key_der(ca_cert.public_key()):
        raise InputError("CA key does not match the CA certificate")
    if not csr.is_signature_valid:
        raise InvalidSignatureError("error checking CSR signature: signature does not verify")

    serial = generate_serial_number()
    subject = x509.Name(
        [attr for attr in csr.subject if attr.oid != NameOID.SERIAL_NUMBER]
        + [x509.NameAttribute(NameOID.SERIAL_NUMBER, str(serial))]
    )
    dns_names, ip_addresses = extensions.san_entries(csr.extensions)

    not_before = now()
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(ca_cert.subject)
        .public_key(csr.public_key())
        .serial_number(serial)
        .not_valid_before(not_before)
        .not_valid_after(_validity_end(cert_type, not_before))
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(csr.public_key()), critical=False)
        .add_extension(_authority_key_identifier(ca_cert), critical=False)
    )
    for extension, critical in _usage_extensions(cert_type):
        builder = builder.add_extension(extension, critical=critical)
    san = extensions.subject_alternative_name(dns_names, ip_addresses)
    if san is not None:
        builder = builder.add_extension(san, critical=False)

    cert = builder.sign(private_key=ca_key, algorithm=_signing_hash(ca_key))

    # re-parse what was produced and make sure the CA signature holds
    issued = x509.load_der_x509_certificate(cert.public_bytes(serialization.Encoding.DER))
    verify_signed_by(issued, ca_cert)

    log.debug("issued %s cert serial=%d for %s", cert_type.value, serial, subject.rfc4514_string())
    return issued


def common_name_of(cert):
    attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    return attrs[0].value if attrs else ""


def sign_csr(csr_file, ca_cert_file, ca_key_file, cert_type=CertType.SERVER):
    """
    Sign the CSR in `csr_file` with the CA in `ca_cert_file`/`ca_key_file`.

    Each input may be PEM or DER. Returns the DER encoded certificate and its
    subject common name.
    """
    csr_bytes = read_file(csr_file, "CSR file")
    ca_cert_bytes = read_file(ca_cert_file, "CA certificate")
    ca_key_bytes = read_file(ca_key_file, "CA key")

    try:
        csr = load_csr(csr_bytes)
    except ValueError as e:
        raise InputError(f"failed to parse CSR '{csr_file}': {e}") from e
    try:
        ca_cert = load_certificate(ca_cert_bytes)
    except ValueError as e:
        raise InputError(f"failed to parse CA certificate '{ca_cert_file}': {e}") from e
    try:
        ca_key = load_private_key(ca_key_bytes)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InputError(f"failed to parse CA key '{ca_key_file}': {e}") from e

    try:
        cert = issue_certificate(csr, ca_cert, ca_key, cert_type)
    except NotACAError as e:
        raise NotACAError(f"file '{ca_cert_file}' is not a CA cert") from e

    return cert.public_bytes(serialization.Encoding.DER), common_name_of(cert)
