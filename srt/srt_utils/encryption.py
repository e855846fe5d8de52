import base64
import os
from typing import Dict, Optional, Tuple, Union

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

# Environment keys that are never encrypted
PLAIN_KEYS = ('salt', 'is_encrypted')
KDF_ITERATIONS = 100000


def generate_key_from_password(
    password: Union[str, bytes],
    salt: Optional[Union[str, bytes]] = None
) -> Tuple[bytes, bytes]:
    """Derive a Fernet key from a password. Returns (key, salt)."""
    if isinstance(password, str):
        password = password.encode('utf-8')
    if salt is None:
        salt = os.urandom(16)
    elif isinstance(salt, str):
        salt = salt.encode('utf-8')

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    key = base64.urlsafe_b64encode(kdf.derive(password))
    return key, salt


def encrypt_data(data: Union[str, bytes], key: bytes) -> str:
    """Encrypt data and return it as a base64 string safe for the ini file."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    token = Fernet(key).encrypt(data)
    return base64.b64encode(token).decode('utf-8')


def decrypt_data(encrypted_data: Union[str, bytes], key: bytes) -> str:
    """Decrypt data produced by encrypt_data (string) or its raw token (bytes)."""
    if isinstance(encrypted_data, str):
        encrypted_data = base64.b64decode(encrypted_data.encode('utf-8'))
    return Fernet(key).decrypt(encrypted_data).decode('utf-8')


def encrypt_environment(env_data: Dict[str, str], encryption_key: str) -> Dict[str, str]:
    """Encrypt every field of an environment definition."""
    key, salt = generate_key_from_password(encryption_key)

    encrypted = {}
    for field, value in env_data.items():
        if field in PLAIN_KEYS:
            continue
        encrypted[field] = encrypt_data(str(value), key)

    encrypted['salt'] = base64.b64encode(salt).decode('utf-8')
    encrypted['is_encrypted'] = 'True'
    return encrypted


def decrypt_environment(env_data: Dict[str, str], encryption_key: str) -> Dict[str, str]:
    """Decrypt an environment definition. Unencrypted definitions are returned as is."""
    if env_data.get('is_encrypted', 'False') != 'True':
        return env_data

    salt = base64.b64decode(env_data['salt'].encode('utf-8'))
    key, _ = generate_key_from_password(encryption_key, salt)

    decrypted = {}
    for field, value in env_data.items():
        if field in PLAIN_KEYS:
            continue
        decrypted[field] = decrypt_data(value, key)

    decrypted['is_encrypted'] = 'False'
    return decrypted
