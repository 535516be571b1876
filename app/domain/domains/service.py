"""Domain service - Custom booking-page domains and their DNS verification records"""

import hashlib
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_user
from ...config import DOMAIN_CNAME_TARGET, DOMAIN_VERIFICATION_SECRET
from ...models import User

logger = logging.getLogger(__name__)

DNS_INSTRUCTIONS = [
    "Log in to your domain registrar (e.g., GoDaddy, Namecheap, Cloudflare)",
    "Navigate to DNS settings for your domain",
    "Add the CNAME record to point your domain to our servers",
    "Add the TXT record for domain verification",
    "Wait for DNS propagation (can take up to 48 hours)",
    "Return here to verify your domain configuration",
]


def generate_verification_token(domain: str) -> str:
    seed = f"{domain}-{DOMAIN_VERIFICATION_SECRET or 'secret'}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def dns_records(domain: str) -> list[dict]:
    return [
        {"type": "CNAME", "name": domain, "value": DOMAIN_CNAME_TARGET},
        {
            "type": "TXT",
            "name": f"_verification.{domain}",
            "value": f"scheduler-verification={generate_verification_token(domain)}",
        },
    ]


class DomainService:
    """Service layer for custom domains"""

    def __init__(self, db: Session):
        self.db = db

    def is_domain_available(self, domain: str, exclude_user_id: Optional[str] = None) -> bool:
        query = self.db.query(User.id).filter(User.custom_domain == domain)
        if exclude_user_id:
            query = query.filter(User.id != exclude_user_id)
        return query.first() is None

    def get_user_by_domain(self, domain: str) -> Optional[User]:
        return self.db.query(User).filter(User.custom_domain == domain.lower()).first()

    def set_custom_domain(self, user: User, domain: str) -> User:
        if not self.is_domain_available(domain, exclude_user_id=user.id):
            raise HTTPException(status_code=400, detail="Domain is already in use")

        user.custom_domain = domain
        user.domain_verified = False
        self.db.commit()
        invalidate_user(user.id, user.username)
        logger.info(f"🌐 Custom domain {domain} set for user {user.id}")
        return user

    def remove_custom_domain(self, user: User) -> None:
        user.custom_domain = None
        user.domain_verified = False
        self.db.commit()
        invalidate_user(user.id, user.username)

    @staticmethod
    def verify_domain(domain: str) -> dict:
        """Report the records to configure; DNS is never queried, so the result stays pending"""
        return {
            "status": "pending",
            "verified": False,
            "message": "Domain verification pending. Please configure DNS records.",
            "dnsRecords": [{**r, "verified": False} for r in dns_records(domain)],
        }

    @staticmethod
    def get_dns_instructions(domain: str) -> dict:
        descriptions = {
            "CNAME": "Points your custom domain to our servers",
            "TXT": "Verifies domain ownership",
        }
        return {
            "records": [{**r, "description": descriptions[r["type"]]} for r in dns_records(domain)],
            "instructions": list(DNS_INSTRUCTIONS),
        }
