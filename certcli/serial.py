import secrets


def generate_serial_number():
    """
    Random positive serial number as required by RFC 5280:
    - at most 20 octets
    - most significant bit cleared so it is never read as negative
    """
    serial_bytes = secrets.token_bytes(19)
    serial_int = int.from_bytes(serial_bytes, byteorder="big")
    serial_int &= (1 << (8 * len(serial_bytes) - 1)) - 1
    # zero is not a valid serial
    return serial_int or 1
