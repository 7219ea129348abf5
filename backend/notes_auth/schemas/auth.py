from pydantic import BaseModel, Field
from typing import Optional, Union

# Presence of fields is checked by the auth flows so that each flow can
# answer with its own message; the schemas only pin names and types.


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    date_of_birth: Optional[str] = Field(None, alias="dateOfBirth")
    verification_method: Optional[str] = Field(None, alias="verificationMethod")

    class Config:
        populate_by_name = True


class VerifyOTPRequest(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    otp: Optional[Union[int, str]] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    otp: Optional[Union[int, str]] = None
    login_method: Optional[str] = Field(None, alias="loginMethod")

    class Config:
        populate_by_name = True


class RequestOTPRequest(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    login_method: Optional[str] = Field(None, alias="loginMethod")

    class Config:
        populate_by_name = True


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")

    class Config:
        populate_by_name = True
