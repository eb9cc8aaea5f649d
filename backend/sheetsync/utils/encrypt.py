from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from sheetsync.config import settings


def get_fernet_key():
    """Returns the Fernet cipher for the configured key."""
    return Fernet(settings.encryption_key.encode('utf-8'))


def encrypt_data(data: str) -> str:
    """Encrypts a connector credential using Fernet."""
    f = get_fernet_key()
    return f.encrypt(data.encode('utf-8')).decode('utf-8')


def decrypt_data(encrypted_data: str) -> str:
    """Decrypts a connector credential using Fernet."""
    f = get_fernet_key()
    return f.decrypt(encrypted_data.encode('utf-8')).decode('utf-8')


def try_decrypt(encrypted_data: Optional[str]) -> Optional[str]:
    """Decrypt a stored credential, returning None when it is missing or was written with another key."""
    if not encrypted_data:
        return None
    try:
        return decrypt_data(encrypted_data)
    except InvalidToken:
        return None


def mask_secret(value: Optional[str]) -> Optional[str]:
    return "********" if value else None
