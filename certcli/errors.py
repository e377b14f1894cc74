class CertCliError(Exception):
    """Base class for errors raised by certcli."""


class InputError(CertCliError):
    """A file or argument could not be used."""


class UserCancelled(CertCliError):
    def __init__(self, message="user cancelled input"):
        super().__init__(message)


class OverwriteDeclined(CertCliError):
    def __init__(self, message="user declined to overwrite"):
        super().__init__(message)


class NotACertificate(CertCliError):
    def __init__(self, message="the file is not in a known format or does not contain a certificate"):
        super().__init__(message)


class NotACAError(CertCliError):
    """The certificate given as issuer has no CA basic constraint."""


class InvalidSignatureError(CertCliError):
    """A CSR self-signature did not verify."""


class VerificationError(CertCliError):
    """A certificate did not verify against its CA."""
