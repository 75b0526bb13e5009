import os

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'your-secret-key-here-make-it-long'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'financial_hub.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Organization settings
    ORGANIZATION_NAME = os.environ.get('ORGANIZATION_NAME', 'Financial Hub')
    CURRENCY_SYMBOL = os.environ.get('CURRENCY_SYMBOL', '₦')

    # Loans
    DEFAULT_LOAN_INTEREST_RATE = float(os.environ.get('DEFAULT_LOAN_INTEREST_RATE', 5))

    # Pagination
    MEMBERS_PAGE_SIZE = 10

    # Used by `flask seed-super-admin`
    SUPER_ADMIN_EMAIL = os.environ.get('SUPER_ADMIN_EMAIL', 'superadmin@financialhub.local')
    SUPER_ADMIN_PASSWORD = os.environ.get('SUPER_ADMIN_PASSWORD')


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    LOG_LEVEL = 'WARNING'
