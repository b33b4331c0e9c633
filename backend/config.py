import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///groupeval.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Session capacity bounds (seats created up front)
    DEFAULT_PARTICIPANT_COUNT = int(os.environ.get('DEFAULT_PARTICIPANT_COUNT', '10'))
    MIN_PARTICIPANTS = int(os.environ.get('MIN_PARTICIPANTS', '2'))
    MAX_PARTICIPANTS = int(os.environ.get('MAX_PARTICIPANTS', '10'))
    # Pass/fail threshold on the 0-100 aggregate
    DEFAULT_THRESHOLD = int(os.environ.get('DEFAULT_THRESHOLD', '50'))
    ADMIN_SECRET_MIN_LENGTH = int(os.environ.get('ADMIN_SECRET_MIN_LENGTH', '6'))
    JOIN_CODE_LENGTH = int(os.environ.get('JOIN_CODE_LENGTH', '6'))
