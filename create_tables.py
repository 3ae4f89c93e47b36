#!/usr/bin/env python3
"""
Create database tables for medicines and scheduled doses.
This script creates tables without dropping existing ones.
"""

from medreminder.database import Base, engine
from medreminder.models import Medicine, MedicineDose  # noqa: F401

print("Creating database tables...")

try:
    Base.metadata.create_all(bind=engine)
    print("✅ Database tables created successfully!")
    print()
    print("The following tables are now available:")
    for table_name in Base.metadata.tables.keys():
        print(f"  - {table_name}")
except Exception as e:
    print(f"❌ Error creating tables: {e}")
    raise
