import re

from unidecode import unidecode


def slugify(text: str) -> str:
    """'Mycelium & Microservices!' -> 'mycelium-microservices'. Transliterates non-ASCII first."""
    text = unidecode(text).lower()
    return re.sub(r"[^a-z0-9]+", "-", text).strip("-")
