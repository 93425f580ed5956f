"""
Configuration handling for qtikit.

Loads settings from environment variables and/or a .env file.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path('.env')
if env_path.exists():
    load_dotenv(env_path)


class Config:
    """Configuration settings for the QTI editing core"""

    # Version used when content carries no version marker
    DEFAULT_QTI_VERSION: str = os.environ.get('QTI_DEFAULT_VERSION', '2.1')

    LOG_LEVEL: str = os.environ.get('QTI_LOG_LEVEL', 'WARNING')

    # Flask upload limit, in bytes
    MAX_CONTENT_LENGTH: int = int(os.environ.get('MAX_CONTENT_LENGTH', 5 * 1024 * 1024))
    PORT: int = int(os.environ.get('PORT', 5000))

    @classmethod
    def to_dict(cls) -> dict:
        """Expose settings as a plain dictionary (for Flask app.config)"""
        return {
            'DEFAULT_QTI_VERSION': cls.DEFAULT_QTI_VERSION,
            'LOG_LEVEL': cls.LOG_LEVEL,
            'MAX_CONTENT_LENGTH': cls.MAX_CONTENT_LENGTH,
        }
