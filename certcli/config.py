import os

from dotenv import load_dotenv

load_dotenv()

KEY_BITS = int(os.getenv("CERTCLI_KEY_BITS", 4096))
PUBLIC_EXPONENT = int(os.getenv("CERTCLI_PUBLIC_EXPONENT", 65537))

# validity periods
CA_MONTHS = int(os.getenv("CERTCLI_CA_MONTHS", 3))
SERVER_MONTHS = int(os.getenv("CERTCLI_SERVER_MONTHS", 3))
CLIENT_DAYS = int(os.getenv("CERTCLI_CLIENT_DAYS", 30))
SUB_CA_MONTHS = int(os.getenv("CERTCLI_SUB_CA_MONTHS", 6))

# output files are private to the owner
FILE_MODE = 0o600
