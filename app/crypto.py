"""
Encryption of OAuth tokens at rest using Fernet (symmetric, from cryptography).

Access and refresh tokens are encrypted before being written to the users table
and decrypted only when a Google call needs them. A refresh token may be absent
(Google omits it on repeat consent), so both helpers pass None through.
"""
from cryptography.fernet import Fernet

from config import TOKEN_ENCRYPTION_KEY

fernet = Fernet(TOKEN_ENCRYPTION_KEY.encode())


def encrypt(value: str | None) -> str | None:
    """Encrypt a token for storage; None stays None."""
    if value is None:
        return None
    return fernet.encrypt(value.encode()).decode()


def decrypt(value: str | None) -> str | None:
    """
    Decrypt a stored token. Returns None if value is None. Raises
    cryptography.fernet.InvalidToken if the key changed since it was written.
    """
    if value is None:
        return None
    return fernet.decrypt(value.encode()).decode()
