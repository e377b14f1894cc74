"""
Human readable certificate summaries.
"""
import base64
import logging
import re
import sys

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa
from cryptography.x509.oid import NameOID, SignatureAlgorithmOID

from certcli import extensions
from certcli.cert_format import read_file
from certcli.errors import NotACertificate

log = logging.getLogger(__name__)

PEM_BLOCK = re.compile(rb"-----BEGIN [A-Z0-9 ]+-----.+?-----END [A-Z0-9 ]+-----", re.DOTALL)

NAME_FIELDS = [
    ("Common Name", NameOID.COMMON_NAME),
    ("Serial Number", NameOID.SERIAL_NUMBER),
    ("Country", NameOID.COUNTRY_NAME),
    ("Organization", NameOID.ORGANIZATION_NAME),
    ("Organizational Unit", NameOID.ORGANIZATIONAL_UNIT_NAME),
    ("Street Address", NameOID.STREET_ADDRESS),
    ("Locality", NameOID.LOCALITY_NAME),
    ("Province", NameOID.STATE_OR_PROVINCE_NAME),
    ("Postal Code", NameOID.POSTAL_CODE),
]

KEY_ALGORITHMS = [
    (rsa.RSAPublicKey, "RSA"),
    (ec.EllipticCurvePublicKey, "ECDSA"),
    (dsa.DSAPublicKey, "DSA"),
    (ed25519.Ed25519PublicKey, "Ed25519"),
    (ed448.Ed448PublicKey, "Ed448"),
]

SIGNATURE_FAMILIES = [
    ({
        SignatureAlgorithmOID.RSA_WITH_SHA1,
        SignatureAlgorithmOID.RSA_WITH_SHA224,
        SignatureAlgorithmOID.RSA_WITH_SHA256,
        SignatureAlgorithmOID.RSA_WITH_SHA384,
        SignatureAlgorithmOID.RSA_WITH_SHA512,
    }, "RSA"),
    ({SignatureAlgorithmOID.RSASSA_PSS}, "RSAPSS"),
    ({
        SignatureAlgorithmOID.ECDSA_WITH_SHA1,
        SignatureAlgorithmOID.ECDSA_WITH_SHA224,
        SignatureAlgorithmOID.ECDSA_WITH_SHA256,
        SignatureAlgorithmOID.ECDSA_WITH_SHA384,
        SignatureAlgorithmOID.ECDSA_WITH_SHA512,
    }, "ECDSA"),
    ({
        SignatureAlgorithmOID.DSA_WITH_SHA1,
        SignatureAlgorithmOID.DSA_WITH_SHA224,
        SignatureAlgorithmOID.DSA_WITH_SHA256,
    }, "DSA"),
    ({SignatureAlgorithmOID.ED25519}, "Ed25519"),
    ({SignatureAlgorithmOID.ED448}, "Ed448"),
]


def split_pem(data: bytes):
    """All PEM blocks in `data`, or `data` itself when it holds none (assumed DER)."""
    blocks = PEM_BLOCK.findall(data)
    return blocks or [data]


def decode_cert(block: bytes):
    try:
        if block.startswith(b"-----BEGIN"):
            return x509.load_pem_x509_certificate(block)
        return x509.load_der_x509_certificate(block)
    except ValueError as e:
        log.debug("block is not a certificate: %s", e)
        return None


def load_cert_from_file(path) -> x509.Certificate:
    data = read_file(path, "certificate")
    for block in split_pem(data):
        cert = decode_cert(block)
        if cert is not None:
            return cert
    raise NotACertificate()


def public_key_algorithm(public_key):
    for key_type, label in KEY_ALGORITHMS:
        if isinstance(public_key, key_type):
            return label
    return type(public_key).__name__


def signature_algorithm(cert):
    """Label such as SHA256-RSA, taken from the issuer's signature algorithm."""
    oid = cert.signature_algorithm_oid
    family = next((label for oids, label in SIGNATURE_FAMILIES if oid in oids), None)
    if family is None:
        return oid.dotted_string
    try:
        hash_algorithm = cert.signature_hash_algorithm
    except UnsupportedAlgorithm:
        hash_algorithm = None
    if hash_algorithm is None:
        return family
    return f"{hash_algorithm.name.upper()}-{family}"


def _name_value(name, oid):
    return ", ".join(attr.value for attr in name.get_attributes_for_oid(oid))


def _render_name(name):
    return "\n".join(
        f"{(label + ':').ljust(21)}{_name_value(name, oid)}" for label, oid in NAME_FIELDS
    )


def render_cert(cert: x509.Certificate) -> str:
    dns_names, ip_addresses = extensions.san_entries(cert.extensions)
    public_key_der = cert.public_key().public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)

    if cert.subject == cert.issuer:
        issuer = "(Self-signed)"
    else:
        issuer = "\n" + _render_name(cert.issuer)

    return (
        f"Discovered {'CA' if extensions.is_ca(cert) else 'Server'} cert\n"
        f"Common Name:     {_name_value(cert.subject, NameOID.COMMON_NAME)}\n"
        f"S/N:             {cert.serial_number}\n"
        f"SANs:            {', '.join(dns_names)}\n"
        f"IPs:             {', '.join(str(ip) for ip in ip_addresses)}\n"
        "\n"
        f"Effective:       {cert.not_valid_before_utc}\n"
        f"Expiration:      {cert.not_valid_after_utc}\n"
        "\n"
        f"Signature Algo:  {signature_algorithm(cert)}\n"
        "Signature:\n"
        f"{base64.b64encode(cert.signature).decode()}\n"
        "\n"
        f"Public Key Algo: {public_key_algorithm(cert.public_key())}\n"
        "PublicKey:\n"
        f"{base64.b64encode(public_key_der).decode()}\n"
        "\n"
        "Subject:\n"
        f"{_render_name(cert.subject)}\n"
        "\n"
        f"Issuer: {issuer}\n"
    )


def show_cert_details(path, out=None):
    cert = load_cert_from_file(path)
    print(render_cert(cert), file=out or sys.stdout)
    return cert
