"""
Database initialization script
Run this to create tables and seed initial data
"""
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from app.core.database import engine, Base, SessionLocal
import app.models  # noqa: F401
from app.models.user import User, UserRole
from app.models.sale import Sale, SaleItem
from app.services.rate_history import CommissionRateService


def init_db():
    """Initialize database with tables"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("✓ Tables created successfully")


def seed_data():
    """Seed initial data"""
    db = SessionLocal()

    try:
        print("\nSeeding initial data...")

        rates = CommissionRateService(db)
        config = rates.get_or_create_settings()
        print(f"✓ Commission settings: {config.default_rate}% of {config.calculation_basis}")

        # Owner account
        owner = db.query(User).filter(User.email == "owner@shop.local").first()
        if not owner:
            owner = User(
                email="owner@shop.local",
                full_name="Shop Owner",
                role=UserRole.OWNER.value,
            )
            db.add(owner)
            print("✓ Owner created (owner@shop.local)")

        # Sample staff member with one sale this month
        staff = db.query(User).filter(User.email == "staff@shop.local").first()
        if not staff:
            staff = User(
                email="staff@shop.local",
                full_name="Sam Staff",
                role=UserRole.STAFF.value,
            )
            db.add(staff)
            db.flush()

            sale = Sale(
                staff_id=staff.id,
                staff_member_name=staff.full_name,
                sold_at=datetime.now(timezone.utc),
            )
            sale.items.append(SaleItem(
                product_name="Sample item",
                line_revenue=Decimal("1000.00"),
                line_gross_profit=Decimal("400.00"),
            ))
            db.add(sale)
            print("✓ Sample staff member and sale created (staff@shop.local)")

        db.commit()
        print("\n✓ Database initialization complete!")

    except Exception as e:
        print(f"✗ Error seeding data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    seed_data()
