import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ec, ed448, ed25519, padding, rsa

from certcli.cert_format import load_certificate, read_file
from certcli.errors import InputError, VerificationError
from certcli.validity import now as utc_now

log = logging.getLogger(__name__)


def verify_signed_by(cert, ca_cert):
    """Raise VerificationError unless `cert` names `ca_cert` as issuer and carries its signature."""
    if cert.issuer != ca_cert.subject:
        raise VerificationError("certificate issuer does not match CA subject")

    ca_public_key = ca_cert.public_key()
    try:
        if isinstance(ca_public_key, rsa.RSAPublicKey):
            ca_public_key.verify(
                cert.signature,
                cert.tbs_certificate_bytes,
                padding.PKCS1v15(),
                cert.signature_hash_algorithm,
            )
        elif isinstance(ca_public_key, ec.EllipticCurvePublicKey):
            ca_public_key.verify(
                cert.signature,
                cert.tbs_certificate_bytes,
                ec.ECDSA(cert.signature_hash_algorithm),
            )
        elif isinstance(ca_public_key, (ed25519.Ed25519PublicKey, ed448.Ed448PublicKey)):
            ca_public_key.verify(cert.signature, cert.tbs_certificate_bytes)
        else:
            raise VerificationError(f"unsupported CA key type {type(ca_public_key).__name__}")
    except InvalidSignature as e:
        raise VerificationError("unable to verify CA signature") from e


def verify_certificate(cert_path, ca_cert_path, now=None):
    """Check that the certificate at `cert_path` was issued by the CA and is currently valid."""
    try:
        cert = load_certificate(read_file(cert_path, "certificate"))
        ca_cert = load_certificate(read_file(ca_cert_path, "CA certificate"))
    except ValueError as e:
        raise InputError(f"failed to parse certificate: {e}") from e

    now = now or utc_now()
    if now < cert.not_valid_before_utc or now > cert.not_valid_after_utc:
        raise VerificationError("certificate is expired or not yet valid")

    verify_signed_by(cert, ca_cert)
    log.debug("verified %s against %s", cert.subject.rfc4514_string(), ca_cert.subject.rfc4514_string())
    return cert
