from pydantic import BaseModel, ConfigDict

class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None

class RegisterRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    name: str | None = None

# Profile and health payloads are relayed as-is; unknown keys are kept.
class ProfileInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    date_of_birth: str | None = None

class HealthInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    height: str | None = None
    weight: str | None = None
    blood_type: str | None = None
    emergency_contact: str | None = None
    allergies: str | None = None
    medications: str | None = None

class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    email: str | None = None
    name: str | None = None
