from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str

class RbacRules(BaseModel):
    roles: dict[str, list[str]]
    public_permissions: list[str] = Field(default_factory=list)

class AbacRule(BaseModel):
    if_condition: dict[str, Any] = Field(alias="if")
    allow: list[str]

    model_config = ConfigDict(populate_by_name=True)

class AbacRules(BaseModel):
    post_rules: list[AbacRule] = Field(default_factory=list)

class PublicizeRules(BaseModel):
    post_types: list[str] = Field(default_factory=lambda: ["post"])
    access_permission: str = "publicize:access"
    skip_meta_prefix: str = "_wpas_skip_"
    done_meta_prefix: str = "_wpas_done_"
    done_all_meta_key: str = "_wpas_done_all"

    def supports(self, post_type: str) -> bool:
        return post_type in self.post_types

class OpsRules(BaseModel):
    data_dir_required: bool = True
    required_env: list[str] = Field(default_factory=list)

class Rules(BaseModel):
    project: ProjectRules
    rbac: RbacRules
    abac: AbacRules
    publicize: PublicizeRules
    ops: OpsRules
