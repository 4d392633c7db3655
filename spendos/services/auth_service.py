"""
Auth Service
Sign-in with an Ethereum wallet: nonce, signed message, JWT with roles
"""
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi import HTTPException

from spendos import config
from spendos.blockchain.treasury_contract import TreasuryContract
from spendos.database.redis_client import CONTRACT_ADMIN_KEY, RedisClient, nonce_key
from spendos.repositories.spend_account_repository import SpendAccountRepository

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_SPENDER = "spender"


@dataclass
class AuthUser:
    address: str
    roles: List[str] = field(default_factory=list)
    owned_account_ids: List[int] = field(default_factory=list)
    approver_account_ids: List[int] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    def to_payload(self) -> dict:
        return {
            "sub": self.address,
            "roles": self.roles,
            "ownedAccountIds": self.owned_account_ids,
            "approverAccountIds": self.approver_account_ids,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "AuthUser":
        return cls(
            address=payload["sub"],
            roles=list(payload.get("roles") or []),
            owned_account_ids=list(payload.get("ownedAccountIds") or []),
            approver_account_ids=list(payload.get("approverAccountIds") or []),
        )


def create_access_token(user: AuthUser) -> str:
    payload = user.to_payload()
    payload["exp"] = datetime.now(timezone.utc) + timedelta(seconds=config.JWT_EXPIRES_SECONDS)
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Payload, or None when the token is invalid or expired"""
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None


class AuthService:
    """Service for wallet authentication"""

    def __init__(self, account_repository: SpendAccountRepository, contract: Optional[TreasuryContract] = None):
        self.account_repository = account_repository
        self.contract = contract

    async def generate_nonce(self, address: str) -> str:
        nonce = secrets.token_hex(16)
        stored = await RedisClient.set_value(nonce_key(address), nonce, config.NONCE_TTL_SECONDS)
        if not stored:
            raise HTTPException(status_code=503, detail="Nonce store unavailable")
        return nonce

    async def verify_signature(self, address: str, message: str, signature: str):
        """
        Check the signed login message and issue a token

        Returns:
            (access_token, AuthUser)
        """
        key = nonce_key(address)
        stored_nonce = await RedisClient.get_value(key)
        if not stored_nonce:
            raise HTTPException(status_code=401, detail="Nonce not found or expired")
        if stored_nonce not in message:
            raise HTTPException(status_code=401, detail="Invalid message format")

        try:
            recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
        except Exception as e:
            logger.warning(f"⚠️ Signature recovery failed for {address}: {e}")
            raise HTTPException(status_code=401, detail="Invalid signature")
        if recovered.lower() != address.lower():
            raise HTTPException(status_code=401, detail="Signature verification failed")

        await RedisClient.delete(key)

        user = await self.get_current_user(address)
        logger.info(f"🔐 {user.address} signed in with roles {user.roles}")
        return create_access_token(user), user

    async def get_current_user(self, address: str) -> AuthUser:
        lower = address.lower()
        owned = await self.account_repository.list_by_owner(lower)
        approving = await self.account_repository.list_by_approver(lower)

        roles = []
        admin = await self._get_admin_address()
        if admin and admin.lower() == lower:
            roles.append(ROLE_ADMIN)
        if approving:
            roles.append(ROLE_MANAGER)
        if owned:
            roles.append(ROLE_SPENDER)

        return AuthUser(
            address=lower,
            roles=roles,
            owned_account_ids=[a.account_id for a in owned],
            approver_account_ids=[a.account_id for a in approving],
        )

    async def _get_admin_address(self) -> Optional[str]:
        cached = await RedisClient.get_value(CONTRACT_ADMIN_KEY)
        if cached:
            return cached
        if self.contract is None:
            return None
        try:
            admin = await self.contract.get_admin()
        except Exception as e:
            logger.warning(f"⚠️ Could not read contract admin: {e}")
            return None
        await RedisClient.set_value(CONTRACT_ADMIN_KEY, admin.lower())
        return admin
