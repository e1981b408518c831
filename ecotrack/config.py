import os
from dotenv import load_dotenv, find_dotenv

# load the nearest .env
load_dotenv(find_dotenv(filename=".env", raise_error_if_not_found=False, usecwd=True))


class Config:
    # Flask
    DEBUG = os.getenv('FLASK_DEBUG', '0') == '1'
    TESTING = False
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret')
    # JWT
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', SECRET_KEY)
    JWT_ACCESS_TOKEN_HOURS = int(os.getenv('JWT_ACCESS_TOKEN_HOURS', '24'))
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:3000')
    # MySQL
    MYSQL_USER = os.getenv('MYSQL_USER', 'root')
    MYSQL_PASSWORD = os.getenv('MYSQL_PASSWORD', 'password')
    MYSQL_HOST = os.getenv('MYSQL_HOST', 'localhost')
    MYSQL_PORT = os.getenv('MYSQL_PORT', '3306')
    MYSQL_DB = os.getenv('MYSQL_DB', 'ecotrack')
    # DATABASE_URL wins over the MYSQL_* pieces (e.g. sqlite:///ecotrack.db for local runs)
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL') or (
        f"mysql+pymysql://{MYSQL_USER}:{MYSQL_PASSWORD}@{MYSQL_HOST}:{MYSQL_PORT}/{MYSQL_DB}?charset=utf8mb4"
    )
    SQL_ECHO = os.getenv('SQL_ECHO', '0') == '1'
    # IANA zone name used for day keys; empty means the server's local zone
    ECOTRACK_TIMEZONE = os.getenv('ECOTRACK_TIMEZONE', '')
    # Nudge mails (Resend)
    RESEND_API_KEY = os.getenv('RESEND_API_KEY', '')
    FROM_EMAIL = os.getenv('FROM_EMAIL', '')
