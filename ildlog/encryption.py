"""
This module handles the encryption key for the application's data file.

It uses the `cryptography` library (Fernet symmetric encryption) so that patient
records are never written to disk in plain text. The key is stored in the file
named by `config.KEY_FILE` and is generated on first use.

Security Note: the key file must be kept secure and out of version control.
"""
# ildlog/encryption.py

import logging

from cryptography.fernet import Fernet

from ildlog import config

logger = logging.getLogger(__name__)


def write_key(path: str = None) -> bytes:
    """Generates a new Fernet key and saves it to the key file."""
    key = Fernet.generate_key()
    with open(path or config.KEY_FILE, "wb") as key_file:
        key_file.write(key)
    return key


def load_key(path: str = None) -> bytes:
    """Loads the Fernet key from the key file.

    Returns:
        bytes: The encryption key.
    """
    with open(path or config.KEY_FILE, "rb") as key_file:
        return key_file.read()


def get_encryptor(path: str = None) -> Fernet:
    """Returns a Fernet instance, generating the key file if it does not exist yet."""
    try:
        key = load_key(path)
    except FileNotFoundError:
        logger.warning("Encryption key not found. Generating a new one at %s", path or config.KEY_FILE)
        key = write_key(path)
    return Fernet(key)
