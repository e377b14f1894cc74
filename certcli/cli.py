"""
Command line entry point.

    certcli ca-cert   COMMON_NAME
    certcli csr       COMMON_NAME --san example.com
    certcli sign      CSR_FILE CA_CERT CA_KEY
    certcli format    TYPE IN_FILE OUT_FILE --from-pem --to-der
    certcli cert-info PATH...
    certcli verify    CERT CA_CERT
"""
import argparse
import ipaddress
import logging
import sys

from werkzeug.utils import secure_filename

from certcli import __version__, cert_format
from certcli.cert_format import Encoding, write_private_file
from certcli.cert_info import show_cert_details
from certcli.cert_name import prompt_cert_name_details
from certcli.errors import CertCliError, InputError, OverwriteDeclined
from certcli.generate_ca import new_ca_cert
from certcli.request_csr import check_alt_names, new_generated_csr
from certcli.sign_csr import CertType, sign_csr
from certcli.validity import expiration_days, expiration_months
from certcli.verify_cert import verify_certificate

log = logging.getLogger(__name__)

FORMAT_TYPES = {
    "cert": cert_format.convert_cert,
    "certificate": cert_format.convert_cert,
    "key": cert_format.convert_key,
    "private_key": cert_format.convert_key,
    "csr": cert_format.convert_csr,
    "request": cert_format.convert_csr,
}


class CommandError(Exception):
    """Carries the message printed before exiting with status 1."""


def file_stem(common_name):
    return secure_filename(common_name) or "cert"


def non_negative_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {number}")
    return number


def split_values(values):
    """Flatten repeated, comma separated option values."""
    return [v.strip() for value in values or [] for v in value.split(",") if v.strip()]


def parse_ips(values):
    try:
        return [ipaddress.ip_address(v) for v in split_values(values)]
    except ValueError as e:
        raise CommandError(str(e)) from e


def write_output(path, data, what):
    try:
        write_private_file(path, data)
    except OSError as e:
        raise CommandError(f"Failed to write {what} to '{path}': {e}") from e
    print(f"Wrote {what} -> {path}")


def prompt_name():
    try:
        return prompt_cert_name_details()
    except CertCliError as e:
        raise CommandError(f"Error prompting for certificate details: {e}") from e


def cmd_ca_cert(args):
    common_name = args.common_name.strip().lower().replace(" ", "")
    if not common_name:
        raise CommandError("Common name is a required parameter")
    cert_out = args.cert_out or file_stem(common_name) + ".cer"
    key_out = args.key_out or file_stem(common_name) + ".key"

    expiration = None
    if args.expire_months > 0:
        expiration = expiration_months(args.expire_months)
    elif args.expire_days > 0:
        expiration = expiration_days(args.expire_days)

    sans = split_values(args.san)
    ips = parse_ips(args.ip)
    name = prompt_name()

    try:
        cert, key = new_ca_cert(common_name, name, expiration=expiration, sans=sans, ip_addresses=ips)
    except (CertCliError, ValueError) as e:
        raise CommandError(f"Error generating CA certificate: {e}") from e

    write_output(cert_out, cert, "certificate")
    write_output(key_out, key, "key")


def cmd_csr(args):
    common_name = args.common_name
    csr_out = args.csr_out or file_stem(common_name) + ".csr"
    key_out = args.key_out or file_stem(common_name) + ".key"

    sans = split_values(args.san)
    ips = parse_ips(args.ip)
    try:
        check_alt_names(sans, ips, args.is_client)
    except InputError as e:
        raise CommandError(str(e)) from e

    name = prompt_name()
    try:
        csr, key = new_generated_csr(common_name, name, sans=sans, ip_addresses=ips, is_client=args.is_client)
    except (CertCliError, ValueError) as e:
        raise CommandError(f"Error generating CSR: {e}") from e

    write_output(csr_out, csr, "CSR")
    write_output(key_out, key, "private key")


def cmd_sign(args):
    if args.is_ca:
        cert_type = CertType.CA
    elif args.is_client:
        cert_type = CertType.CLIENT
    else:
        cert_type = CertType.SERVER

    try:
        cert, common_name = sign_csr(args.csr_file, args.ca_cert, args.ca_key, cert_type)
    except (CertCliError, ValueError) as e:
        raise CommandError(f"Failed to create signed certificate: {e}") from e

    write_output(args.cert_out or file_stem(common_name) + ".cer", cert, "signed cert")


def cmd_format(args):
    if args.source is None:
        args.parser.error("Must specify a source format")
    if args.target is None:
        args.parser.error("Must specify a target format")
    if args.source is args.target:
        print("Formats are the same, exiting")
        return

    convert = FORMAT_TYPES.get(args.type.lower())
    if convert is None:
        raise CommandError(f"Unknown file type '{args.type}'")
    try:
        convert(args.source, args.target, args.in_file, args.out_file)
    except OverwriteDeclined as e:
        print(e)
        return
    except (CertCliError, OSError) as e:
        raise CommandError(str(e)) from e


def cmd_cert_info(args):
    for path in args.paths:
        try:
            show_cert_details(path)
        except CertCliError as e:
            raise CommandError(f"Failed to parse certificate: {e}") from e


def cmd_verify(args):
    try:
        cert = verify_certificate(args.cert, args.ca_cert)
    except CertCliError as e:
        raise CommandError(f"Verification failed: {e}") from e
    print(f"OK: {cert.subject.rfc4514_string()} issued by {cert.issuer.rfc4514_string()}")


def build_parser():
    parser = argparse.ArgumentParser(prog="certcli", description="Ad-hoc CA and certificate tooling.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    p = sub.add_parser("ca-cert", help="create a new, self-signed root CA cert")
    p.add_argument("common_name", metavar="COMMON_NAME",
                   help='The "CN" field in the certificate. This could be a domain name or another identifying string.')
    p.add_argument("--cert-out", help="Output path for the CA cert. Default is './<common-name>.cer'")
    p.add_argument("--key-out", help="Output path for the CA key. Default is './<common-name>.key'")
    p.add_argument("--expire-months", type=non_negative_int, default=0,
                   help="Validity time, in months. Takes precedence over --expire-days")
    p.add_argument("--expire-days", type=non_negative_int, default=0, help="Validity time, in days")
    p.add_argument("--san", action="append", help="Subject Alternative Name for this cert")
    p.add_argument("--ip", action="append", help="IP address for this cert")
    p.set_defaults(func=cmd_ca_cert)

    p = sub.add_parser("csr", help="create a new DER encoded Certificate Signing Request")
    p.add_argument("common_name", metavar="COMMON_NAME", help='The "CN" field in the certificate.')
    p.add_argument("--csr-out", help="Output path for the CSR. Default is './<common-name>.csr'")
    p.add_argument("--key-out", help="Output path for the private key. Default is './<common-name>.key'")
    p.add_argument("--san", action="append",
                   help="Subject Alternative Name. At least one of --san or --ip is required unless --is-client")
    p.add_argument("--ip", action="append",
                   help="IP address. At least one of --san or --ip is required unless --is-client")
    p.add_argument("--is-client", action="store_true",
                   help="The CSR is for client authentication, so no SAN or IP is allowed")
    p.set_defaults(func=cmd_csr)

    p = sub.add_parser("sign", help="sign a CSR with a CA cert, also used to create sub-CAs")
    p.add_argument("csr_file", metavar="CSR_FILE", help="The CSR file that should be signed by the CA")
    p.add_argument("ca_cert", metavar="CA_CERT", help="The CA's certificate")
    p.add_argument("ca_key", metavar="CA_KEY", help="The CA key to use to sign the CSR")
    kind = p.add_mutually_exclusive_group()
    kind.add_argument("--is-ca", action="store_true", help="The output certificate is for a CA")
    kind.add_argument("--is-client", action="store_true", help="The output certificate is for client auth")
    p.add_argument("--cert-out", help="Output path for the certificate. Default is './<subject-common-name>.cer'")
    p.set_defaults(func=cmd_sign)

    p = sub.add_parser("format", help="change a certificate, key or CSR to another encoding")
    p.add_argument("type", metavar="TYPE", help="One of 'cert', 'private_key' or 'csr'")
    p.add_argument("in_file", metavar="IN_FILE", help="The file to use as input")
    p.add_argument("out_file", metavar="OUT_FILE", help="The file to write the result to")
    source = p.add_mutually_exclusive_group()
    source.add_argument("--from-der", dest="source", action="store_const", const=Encoding.DER)
    source.add_argument("--from-pem", dest="source", action="store_const", const=Encoding.PEM)
    target = p.add_mutually_exclusive_group()
    target.add_argument("--to-der", dest="target", action="store_const", const=Encoding.DER)
    target.add_argument("--to-pem", dest="target", action="store_const", const=Encoding.PEM)
    p.set_defaults(func=cmd_format, parser=p)

    p = sub.add_parser("cert-info", help="parse a PEM or DER encoded cert and display its details")
    p.add_argument("paths", metavar="PATH", nargs="+", help="Certificate file")
    p.set_defaults(func=cmd_cert_info)

    p = sub.add_parser("verify", help="check that a cert was issued by a CA and is currently valid")
    p.add_argument("cert", metavar="CERT")
    p.add_argument("ca_cert", metavar="CA_CERT")
    p.set_defaults(func=cmd_verify)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    log.debug("running %s", args.command)
    try:
        args.func(args)
    except CommandError as e:
        print(e)
        return 1
    return 0
