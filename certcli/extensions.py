from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID


def subject_alternative_name(sans=(), ip_addresses=()):
    """SAN extension value for the given DNS names and IPs, or None if both are empty."""
    names = [x509.DNSName(san) for san in sans]
    names += [x509.IPAddress(ip) for ip in ip_addresses]
    if not names:
        return None
    return x509.SubjectAlternativeName(names)


def key_usage(digital_signature=True, key_cert_sign=False):
    return x509.KeyUsage(
        digital_signature=digital_signature,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=key_cert_sign,
        crl_sign=False,
        encipher_only=False,
        decipher_only=False,
    )


def extended_key_usage(server_auth=True, client_auth=True):
    usages = []
    if client_auth:
        usages.append(ExtendedKeyUsageOID.CLIENT_AUTH)
    if server_auth:
        usages.append(ExtendedKeyUsageOID.SERVER_AUTH)
    return x509.ExtendedKeyUsage(usages)


def san_entries(extensions):
    """(dns_names, ip_addresses) carried by a SAN extension, if present."""
    try:
        san = extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return [], []
    return san.get_values_for_type(x509.DNSName), san.get_values_for_type(x509.IPAddress)


def is_ca(cert):
    try:
        constraints = cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return False
    return constraints.ca
