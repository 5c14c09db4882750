from typing import Literal

from pydantic import BaseModel, Field


class CategoryLimitsRules(BaseModel):
    highlight: int = Field(3, ge=0)
    normal: int = Field(9, ge=0)
    grid: int = Field(9, ge=0)

class NewsletterRules(BaseModel):
    category_limits: CategoryLimitsRules = Field(default_factory=CategoryLimitsRules)
    subject_template: str = "Newsletter #{number}"
    max_recommended: int = Field(21, ge=1)

class DeliveryRules(BaseModel):
    batch_size: int = Field(300, ge=1)
    second_batch_delay_hours: int = Field(24, ge=0)
    provider_timeout_seconds: float = Field(30.0, gt=0)
    lock_ttl_seconds: int = Field(900, ge=1)
    list_name_template: str = "Newsletter #{number} - Batch {batch} - {timestamp}"

class ProviderRules(BaseModel):
    name: Literal["dev", "brevo"] = "dev"
    base_url: str = "https://api.brevo.com/v3"
    api_key_env: str = "BREVO_API_KEY"
    sender_id: int | None = None
    # dependency (group) id -> provider list id
    group_list_map: dict[int, int] = Field(default_factory=dict)

class OpsRules(BaseModel):
    required_env: list[str] = Field(default_factory=list)

class Rules(BaseModel):
    newsletter: NewsletterRules = Field(default_factory=NewsletterRules)
    delivery: DeliveryRules = Field(default_factory=DeliveryRules)
    provider: ProviderRules = Field(default_factory=ProviderRules)
    ops: OpsRules = Field(default_factory=OpsRules)
