"""
Pydantic models for API requests.
These define the contract between the API and external clients.

Service and event creation bodies are the domain ``ServiceData`` /
``EventData`` models; this file only holds request shapes that have no
domain counterpart.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from seva.domain import RegistrationStatus


class RegisterForServiceRequest(BaseModel):
    message: Optional[str] = None


class UpdateRegistrationStatusRequest(BaseModel):
    status: RegistrationStatus
    service_id: str = Field(..., alias="serviceId")

    model_config = ConfigDict(populate_by_name=True)


class CreateTempleRequest(BaseModel):
    name: str
    location: str = ""
    description: Optional[str] = None


class ServiceTypeRequest(BaseModel):
    name: str
    icon: str


class UpdateServiceTypeRequest(BaseModel):
    name: Optional[str] = None
    icon: Optional[str] = None


class QuickLinkRequest(BaseModel):
    title: str
    url: str


class UpdateQuickLinkRequest(BaseModel):
    title: Optional[str] = None
    url: Optional[str] = None
