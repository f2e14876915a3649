import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Database
DATABASE_URL = os.getenv('DATABASE_URL')
DB_RETRY_ATTEMPTS = int(os.getenv('DB_RETRY_ATTEMPTS', '3'))

# Plaid
PLAID_CLIENT_ID = os.getenv('PLAID_CLIENT_ID')
PLAID_SECRET = os.getenv('PLAID_SECRET')
PLAID_ENV = os.getenv('PLAID_ENV', 'sandbox')

# Server and jobs
HOST = os.getenv('HOST', '0.0.0.0')
PORT = int(os.getenv('PORT', '8000'))
RESET_HOUR = int(os.getenv('RESET_HOUR', '0'))
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


def validate_config():
    """
    Validate required environment variables before the server starts.
    """
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is not set in the environment (.env)")
    if PLAID_ENV not in ('sandbox', 'development', 'production'):
        raise ValueError(f"PLAID_ENV has unknown value '{PLAID_ENV}'")
