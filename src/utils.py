"""
Utility functions for the downloader
"""

from pathlib import Path
import hashlib


def write_bytes_file(file_path, data):
    """Write bytes to a file, replacing it if present. Returns bytes written."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, 'wb') as f:
        return f.write(data)


def sha256_hex(data):
    """SHA-256 of an in-memory buffer"""
    return hashlib.sha256(data).hexdigest()


def format_bytes(bytes_size):
    """Format bytes to human readable"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024
    return f"{bytes_size:.2f} TB"
