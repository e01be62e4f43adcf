import qrcode
from io import BytesIO
import base64
import uuid

TICKET_CODE_PREFIX = "TKT-"


def generate_ticket_code() -> str:
    """
    Generate the text printed into a ticket's QR code.
    TKT- followed by 32 upper-case hex characters; uniqueness is backed by
    the unique index on tickets.qr_code.
    """
    return f"{TICKET_CODE_PREFIX}{uuid.uuid4().hex.upper()}"


def is_ticket_code(value: str) -> bool:
    if not value or not value.startswith(TICKET_CODE_PREFIX):
        return False
    body = value[len(TICKET_CODE_PREFIX):]
    return len(body) == 32 and all(c in "0123456789ABCDEF" for c in body)


def generate_qr_image(data: str, size: int = 10, border: int = 2) -> bytes:
    """
    Generate QR code image as PNG bytes.
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)

    return buffer.getvalue()


def generate_qr_base64(data: str, size: int = 10) -> str:
    """
    Generate QR code as base64 encoded PNG string.
    Useful for embedding in HTML/JSON.
    """
    img_bytes = generate_qr_image(data, size)
    return base64.b64encode(img_bytes).decode('utf-8')


def generate_data_url(base64_data: str) -> str:
    return f"data:image/png;base64,{base64_data}"
