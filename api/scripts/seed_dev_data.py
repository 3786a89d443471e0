#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create MongoDB indexes, declare the notification exchange and seed a
development database.

Seeds one citizen, one administrator, an institution per district, a
province-wide fallback institution and a district department, then prints
access tokens for each seeded user.
"""

import sys
import os
import logging
from typing import Dict, List

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.entities import DistrictDepartment, User
from models.enums import UserRole
from services.amqp import create_amqp_service
from services.auth import AuthService
from services.mongodb import get_mongodb_service, close_mongodb_connection
from services.repositories import DepartmentRepository, UserRepository

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

SEED_DISTRICTS = [
    ("Kigali", "Gasabo"),
    ("Kigali", "Nyarugenge"),
]


def build_seed_users() -> List[User]:
    """Users seeded into a fresh development database."""
    users = [
        User(role=UserRole.CITIZEN, name="Demo Citizen", email="citizen@ijwi.local", phone="+250780000001"),
        User(role=UserRole.ADMIN, name="Demo Administrator", email="admin@ijwi.local"),
        User(
            role=UserRole.INSTITUTION,
            name="Kigali Province Office",
            institution_name="Kigali Province Office",
            email="province@ijwi.local",
            province="Kigali"
        ),
    ]
    for province, district in SEED_DISTRICTS:
        users.append(User(
            role=UserRole.INSTITUTION,
            name=f"{district} District",
            institution_name=f"{district} District Office",
            email=f"{district.lower()}@ijwi.local",
            province=province,
            district=district
        ))
    return users


def build_seed_departments() -> List[DistrictDepartment]:
    return [
        DistrictDepartment(
            name=f"{district} Infrastructure Department",
            province=province,
            district=district,
            email=f"infrastructure.{district.lower()}@ijwi.local"
        )
        for province, district in SEED_DISTRICTS
    ]


class SeedConfigurationError(Exception):
    """Raised when the environment cannot produce usable seed output."""
    pass


def load_auth_service() -> AuthService:
    """
    Build the token signer from the key pair the API verifies with.

    Without both keys the signer would generate its own throwaway pair and
    every printed token would be rejected by the running API.
    """
    missing = [name for name in ("JWT_PRIVATE_KEY", "JWT_PUBLIC_KEY") if not os.getenv(name)]
    if missing:
        raise SeedConfigurationError(
            f"Set {' and '.join(missing)} to the key pair the API uses before seeding"
        )
    return AuthService(os.getenv("JWT_PRIVATE_KEY"), os.getenv("JWT_PUBLIC_KEY"))


def seed(users: UserRepository, departments: DepartmentRepository) -> Dict[str, List]:
    """Insert the seed entities and return what was created."""
    created_users = [users.create(user) for user in build_seed_users()]
    created_departments = [departments.create(dept) for dept in build_seed_departments()]

    logger.info(f"Seeded {len(created_users)} users and {len(created_departments)} departments")
    return {"users": created_users, "departments": created_departments}


def main():
    """Create indexes, seed data and print development tokens."""
    try:
        auth_service = load_auth_service()
    except SeedConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        mongodb_service = get_mongodb_service()

        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health}")
            sys.exit(1)

        mongodb_service.create_indexes()
        if not create_amqp_service().declare_exchange():
            logger.warning("Notification exchange not declared, events will fail until the broker is up")

        created = seed(UserRepository(mongodb_service), DepartmentRepository(mongodb_service))

        for user in created["users"]:
            token = auth_service.generate_access_token(user, expires_minutes=24 * 60)
            print(f"{user.role:<12} {user.display_name:<32} {token}")

        for department in created["departments"]:
            print(f"DEPARTMENT   {department.name:<32} {department.id}")

    except Exception as e:
        logger.error(f"Failed to seed development data: {e}")
        sys.exit(1)
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    main()
