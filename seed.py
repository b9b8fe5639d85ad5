"""
Seed the database.

    python seed.py            # admin account only
    python seed.py --demo 25  # admin plus 25 generated products
"""
import argparse
import logging
import os
import random

from faker import Faker

import services
from config import load_settings
from database import Store, connect
from errors import AlreadyExists, ValidationError
from validation import validate_body
from validators import ProductInput, RegisterInput

logger = logging.getLogger("seed")

CATEGORIES = ["Electronics", "Home & Kitchen", "Beauty", "Clothing", "Toys"]


def seed_admin(store: Store) -> bool:
    payload = validate_body(RegisterInput, {
        "full_name": os.getenv("ADMIN_NAME", "Admin User"),
        "email": os.getenv("ADMIN_EMAIL", "admin@example.com"),
        "password": os.getenv("ADMIN_PASSWORD", "admin12345"),
    })
    try:
        services.create_admin(store, payload)
    except AlreadyExists as e:
        logger.info("Skipping admin: %s", e.message)
        return False
    logger.info("Admin user seeded successfully")
    return True


def seed_products(store: Store, count: int, fake: Faker = None) -> int:
    fake = fake or Faker()
    admin = store.collection("user").find_one({"role": "admin"})
    if admin is None:
        raise RuntimeError("Seed the admin account before products")
    user = {"_id": str(admin["_id"])}
    created = 0
    for _ in range(count):
        payload = ProductInput(
            sku=fake.unique.bothify("SKU-####-??").upper(),
            name=fake.catch_phrase(),
            description=fake.sentence(),
            stock=random.randint(0, 200),
            min_stock=random.randint(0, 10),
            category=random.choice(CATEGORIES),
            price=round(random.uniform(5, 500), 2),
            discount=random.choice([0, 0, 5, 10, 25]),
            status=random.choice(["active", "inactive", "draft"]),
            supplier={"name": fake.company(), "phone": fake.phone_number(), "email": fake.company_email()},
        )
        services.create_product(store, payload, user)
        created += 1
    logger.info("Seeded %s demo products", created)
    return created


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--demo", type=int, default=0, help="number of demo products to generate")
    args = parser.parse_args(argv)

    settings = load_settings()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = connect(settings)
    try:
        seed_admin(store)
        if args.demo:
            seed_products(store, args.demo)
    except ValidationError as e:
        logger.error("Error seeding admin user: %s", e.message)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
