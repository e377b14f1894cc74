"""
Interactive collection of certificate subject name details.
"""
import logging
import sys
from dataclasses import dataclass, fields

from cryptography import x509
from cryptography.x509.oid import NameOID

from certcli.errors import UserCancelled

log = logging.getLogger(__name__)

# (attribute, prompt label, OID) in prompt order
NAME_FIELDS = [
    ("country", "Country", NameOID.COUNTRY_NAME),
    ("organization", "Organization", NameOID.ORGANIZATION_NAME),
    ("organizational_unit", "Organizational Unit", NameOID.ORGANIZATIONAL_UNIT_NAME),
    ("street_address", "Street Address", NameOID.STREET_ADDRESS),
    ("locality", "Locality", NameOID.LOCALITY_NAME),
    ("province", "Province", NameOID.STATE_OR_PROVINCE_NAME),
    ("postal_code", "Postal Code", NameOID.POSTAL_CODE),
]


@dataclass
class CertName:
    country: str = ""
    organization: str = ""
    organizational_unit: str = ""
    street_address: str = ""
    locality: str = ""
    province: str = ""
    postal_code: str = ""

    def to_x509_name(self, common_name, serial_number=None) -> x509.Name:
        """Subject name made of the collected fields, the CN and an optional serialNumber."""
        attributes = [
            x509.NameAttribute(oid, getattr(self, attr))
            for attr, _, oid in NAME_FIELDS
            if getattr(self, attr)
        ]
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))
        if serial_number is not None:
            attributes.append(x509.NameAttribute(NameOID.SERIAL_NUMBER, str(serial_number)))
        return x509.Name(attributes)

    def summary(self):
        width = max(len(label) for _, label, _ in NAME_FIELDS) + 2
        return "\n".join(
            f"{(label + ':').ljust(width)}'{getattr(self, attr)}'"
            for attr, label, _ in NAME_FIELDS
        )


def _read_line(stdin):
    line = stdin.readline()
    if not line:
        raise UserCancelled()
    return line.rstrip("\r\n")


def prompt_cert_name_details(stdin=None, stdout=None) -> CertName:
    """
    Ask the operator for each name field, then for confirmation.

    The round repeats until the operator answers 'y'. End of input at any
    prompt raises UserCancelled.
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    while True:
        name = CertName()
        print("\nEnter certificate name details.", file=stdout)
        for attr, label, _ in NAME_FIELDS:
            print(f"{label}: ", end="", file=stdout, flush=True)
            setattr(name, attr, _read_line(stdin).strip())

        if name.country:
            name.country = name.country.upper()
            if len(name.country) != 2 or not name.country.isalpha():
                print(f"Country must be a two letter code, got '{name.country}'", file=stdout)
                continue

        print(f"Are these details correct?\n{name.summary()}\n\n(y/n): ", end="", file=stdout, flush=True)
        if _read_line(stdin).strip().lower() == "y":
            log.debug("collected name details: %s", name)
            return name
