import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from dealflow.core.startup import bootstrap
from dealflow.database.db import get_db_session
from dealflow.database.init_db import init_db
from dealflow.models import Company, User
from dealflow.schemas.deals import DealCreateRequest
from dealflow.services.deal_service import DealService

DEMO_EMAIL = "demo@dealflow.local"


def seed_demo_pipeline():
    with get_db_session() as db:
        existing = db.query(User).filter(User.email == DEMO_EMAIL).first()
        if existing:
            print("Seed user already exists.")
            return

        print("Seeding demo owner and deals...")
        owner = User(email=DEMO_EMAIL, name="Demo Owner")
        db.add(owner)
        db.commit()
        company = Company(owner_id=owner.id, name="TechCorp Inc.")
        db.add(company)
        db.commit()

        service = DealService(db=db)
        service.create_deal(
            owner.id,
            DealCreateRequest(title="Cloud migration", value=Decimal("48000"), company_id=company.id),
        )
        service.create_deal(owner.id, DealCreateRequest(title="Support renewal", value=Decimal("12000")))
        print(f"Seeded owner {owner.email} (id={owner.id}) with 2 deals")


if __name__ == "__main__":
    bootstrap()
    init_db()
    seed_demo_pipeline()
