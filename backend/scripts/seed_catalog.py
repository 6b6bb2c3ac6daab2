#!/usr/bin/env python3
import os
import sys
import logging

# Add the parent directory to sys.path to allow imports from the backend
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db import SessionLocal, init_db
from schema import Category
from services.catalog import create_category, create_product

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

CATALOG = {
    "Burgers": [
        {"name": "Classic Burger", "price": "32.90", "stock": 40},
        {"name": "Double Cheddar", "price": "41.50", "stock": 25, "discount": "10", "discountType": "PERCENTAGE"},
    ],
    "Drinks": [
        {"name": "Lemonade", "price": "9.00"},
        {"name": "Craft Soda", "price": "12.00", "stock": 60, "discount": "2.00", "discountType": "FIXED_VALUE"},
    ],
    "Desserts": [
        {"name": "Brownie", "price": "14.00", "stock": 15},
        {"name": "Seasonal Pie", "price": "18.00", "stock": 0, "available": False},
    ],
}

def seed():
    """
    Populates an empty database with demo categories and products.

    Skips categories that already exist so the script can be re-run safely.
    """
    init_db()
    db = SessionLocal()
    try:
        for category_name, products in CATALOG.items():
            if db.query(Category).filter_by(name=category_name).first():
                logger.info(f"Category {category_name} already present, skipping")
                continue
            category = create_category(db, category_name)
            for data in products:
                create_product(db, {**data, "categoryId": category.id})
            logger.info(f"Seeded {len(products)} products into {category_name}")
    finally:
        db.close()

if __name__ == "__main__":
    seed()
