"""
Database configuration and utilities
"""
import logging
import os
from flask import Flask
from models import db, Member, DonationList, DonationItem, Pledge, Payment, Expense

logger = logging.getLogger(__name__)


def create_app(config_mode='development'):
    """Create and configure Flask app"""
    app = Flask(__name__)

    # Database configuration
    if config_mode == 'production':
        # PostgreSQL for production
        database_url = os.environ.get('DATABASE_URL')
        if database_url:
            # Fix postgres:// to postgresql:// for SQLAlchemy
            if database_url.startswith('postgres://'):
                database_url = database_url.replace('postgres://', 'postgresql://', 1)
            app.config['SQLALCHEMY_DATABASE_URI'] = database_url
            logger.info(f"Using PostgreSQL: {database_url[:50]}...")
        else:
            app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///portal.db'
            logger.info("Using SQLite fallback")
    elif config_mode == 'testing':
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
        app.config['TESTING'] = True
    else:
        # SQLite for development
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///portal.db'
        logger.info("Using SQLite for development")

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'change-me-in-production')

    # House-wide dues and uploads
    app.config['DEFAULT_MONTHLY_FEE'] = float(os.environ.get('DEFAULT_MONTHLY_FEE', '50.00'))
    app.config['UPLOAD_FOLDER'] = os.environ.get('UPLOAD_FOLDER', 'uploads')
    app.config['MAX_CONTENT_LENGTH'] = 5 * 1024 * 1024  # 5MB

    # Initialize database
    db.init_app(app)

    return app


def create_admin(email, name, password):
    """Create an administrator account, returns the member or None if the email is taken"""
    email = email.strip().lower()
    if Member.query.filter_by(email=email).first():
        return None

    admin = Member(name=name, email=email, role='admin', active=True)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    return admin


def init_database(app):
    """Initialize database tables and the first administrator"""
    with app.app_context():
        db.create_all()

        admin = Member.query.filter_by(role='admin').first()
        if not admin:
            email = os.environ.get('ADMIN_EMAIL', 'admin@example.com')
            password = os.environ.get('ADMIN_PASSWORD', 'admin123')
            print("No administrator found, creating the default one...")
            create_admin(email, 'Administrator', password)
            print(f"✅ Created administrator {email}")
            print("💡 Change the password after the first login")

        print("Database initialized successfully!")


def check_database_status(app):
    """Check current database status"""
    with app.app_context():
        try:
            print("📊 Database Status:")
            print(f"   Members: {Member.query.count()}")
            print(f"   Active members: {Member.query.filter_by(active=True).count()}")
            print(f"   Donation lists: {DonationList.query.count()}")
            print(f"   Donation items: {DonationItem.query.count()}")
            print(f"   Pledges: {Pledge.query.count()}")
            print(f"   Payments: {Payment.query.count()}")
            print(f"   Pending approval: {Payment.query.filter_by(status='pending_approval').count()}")
            print(f"   Expenses: {Expense.query.count()}")
            return True

        except Exception as e:
            print(f"❌ Database error: {e}")
            return False


if __name__ == '__main__':
    import sys

    config_mode = os.environ.get('PORTAL_ENV', 'development')

    if len(sys.argv) > 1:
        command = sys.argv[1]

        if command == 'init':
            init_database(create_app(config_mode))

        elif command == 'status':
            check_database_status(create_app(config_mode))

        elif command == 'create-admin':
            if len(sys.argv) != 5:
                print("Usage: python database.py create-admin <email> <name> <password>")
                sys.exit(1)

            email, name, password = sys.argv[2:5]
            app = create_app(config_mode)
            with app.app_context():
                if create_admin(email, name, password):
                    print(f"✅ Created administrator: {name} ({email})")
                else:
                    print(f"❌ Member with email {email} already exists")
                    sys.exit(1)

        else:
            print("Available commands: init, status, create-admin")

    else:
        print("Usage: python database.py <command>")
        print("Commands:")
        print("  init          - Initialize database")
        print("  status        - Check database status")
        print("  create-admin  - Create administrator account")
