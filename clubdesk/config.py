"""
clubdesk settings
"""
from decimal import Decimal
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Supabase settings"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase service key")

    class Config:
        env_prefix = ""
        case_sensitive = False
        extra = "ignore"


class AuthSettings(BaseSettings):
    """Session token settings"""

    JWT_SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24h

    SESSION_COOKIE_NAME: str = "mc_session"

    class Config:
        env_file = ".env"
        extra = "ignore"


class ClubRules(BaseSettings):
    """Attendance and billing rules"""

    # Attendance window
    net_practice_cutoff_hours: int = Field(default=48, description="Net practice self-service cutoff (hours before start)")

    # Fees
    discount_rate: Decimal = Field(default=Decimal("0.25"), description="Student / youth discount")
    youth_groups: List[str] = Field(default=["U-13", "U-15", "U-18"])

    # Dashboard
    dashboard_window_days: int = Field(default=30, description="Look-around window (days)")
    upcoming_limit: int = Field(default=7)
    friends_summary_limit: int = Field(default=3, description="Upcoming events that get a friends summary")

    # Stats
    payment_breakdown_limit: int = Field(default=20)
    stats_years_back: int = Field(default=2)

    class Config:
        env_prefix = "CLUB_"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_supabase_config() -> SupabaseConfig:
    return SupabaseConfig()


@lru_cache()
def get_auth_settings() -> AuthSettings:
    return AuthSettings()


@lru_cache()
def get_club_rules() -> ClubRules:
    return ClubRules()


# Valid target groups for events and profiles
TARGET_GROUPS = ["Men", "Women", "U-13", "U-15", "U-18", "Kids"]
