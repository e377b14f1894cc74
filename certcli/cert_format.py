"""
PEM <-> DER conversion for certificates, keys and signing requests, plus the
file helpers shared by the other commands.
"""
import enum
import logging
import os
import sys

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from certcli import config
from certcli.errors import InputError, OverwriteDeclined

log = logging.getLogger(__name__)

PEM_MARKER = b"-----BEGIN"


class Encoding(enum.Enum):
    DER = "der"
    PEM = "pem"

    @property
    def serialization(self):
        return getattr(serialization.Encoding, self.name)


def is_pem(data: bytes) -> bool:
    return data.lstrip().startswith(PEM_MARKER)


def file_exists(filename):
    return os.path.exists(filename)


def confirm_overwrite(filename, stdin=None, stdout=None):
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    print(f"Are you sure you want to overwrite '{filename}'? (y/n) ", end="", file=stdout, flush=True)
    answer = stdin.readline()
    return answer.strip().lower() == "y"


def read_file(filename, what="file"):
    try:
        with open(filename, "rb") as f:
            return f.read()
    except OSError as e:
        raise InputError(f"failed to read {what} '{filename}': {e}") from e


def write_private_file(filename, data):
    fd = os.open(filename, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, config.FILE_MODE)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    # O_CREAT mode does not apply to an existing file
    os.chmod(filename, config.FILE_MODE)
    log.debug("wrote %d bytes to %s", len(data), filename)


def _load(data, encoding, pem_loader, der_loader):
    if encoding is Encoding.PEM:
        return pem_loader(data)
    if encoding is Encoding.DER:
        return der_loader(data)
    if is_pem(data):
        return pem_loader(data)
    try:
        return der_loader(data)
    except ValueError:
        # PEM armor preceded by text, e.g. "openssl x509 -text" output
        if PEM_MARKER not in data:
            raise
        return pem_loader(data)


def load_certificate(data: bytes, encoding=None) -> x509.Certificate:
    return _load(data, encoding, x509.load_pem_x509_certificate, x509.load_der_x509_certificate)


def load_csr(data: bytes, encoding=None) -> x509.CertificateSigningRequest:
    return _load(data, encoding, x509.load_pem_x509_csr, x509.load_der_x509_csr)


def load_private_key(data: bytes, encoding=None):
    return _load(
        data, encoding,
        lambda d: serialization.load_pem_private_key(d, password=None),
        lambda d: serialization.load_der_private_key(d, password=None),
    )


def _convert(loader, dumper, what, source, target, in_file, out_file, stdin=None, stdout=None):
    if file_exists(out_file) and not confirm_overwrite(out_file, stdin, stdout):
        raise OverwriteDeclined()

    in_bytes = read_file(in_file, what)
    try:
        obj = loader(in_bytes, source)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InputError(f"'{in_file}' is not a {source.name} encoded {what}: {e}") from e

    try:
        out_bytes = dumper(obj, target.serialization)
    except ValueError as e:
        raise InputError(f"cannot write {what} from '{in_file}' as {target.name}: {e}") from e

    write_private_file(out_file, out_bytes)
    log.info("converted %s %s (%s) -> %s (%s)", what, in_file, source.name, out_file, target.name)


def convert_cert(source, target, in_file, out_file, stdin=None, stdout=None):
    _convert(load_certificate, lambda cert, enc: cert.public_bytes(enc),
             "certificate", source, target, in_file, out_file, stdin, stdout)


def convert_key(source, target, in_file, out_file, stdin=None, stdout=None):
    _convert(load_private_key,
             lambda key, enc: key.private_bytes(enc, serialization.PrivateFormat.TraditionalOpenSSL,
                                                serialization.NoEncryption()),
             "private key", source, target, in_file, out_file, stdin, stdout)


def convert_csr(source, target, in_file, out_file, stdin=None, stdout=None):
    _convert(load_csr, lambda csr, enc: csr.public_bytes(enc),
             "certificate request", source, target, in_file, out_file, stdin, stdout)
