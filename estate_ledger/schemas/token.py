"""Utility token schemas"""
from pydantic import BaseModel, Field


class TokenInfoResponse(BaseModel):
    name: str
    symbol: str
    decimals: int
    cap: int
    total_supply: int
    total_issued: int
    total_destroyed: int
    is_paused: bool


class BalanceResponse(BaseModel):
    account: str
    balance: int


class AllowanceResponse(BaseModel):
    owner: str
    spender: str
    allowance: int


class IssueRequest(BaseModel):
    caller: str
    to: str
    amount: int = Field(gt=0)


class DestroyRequest(BaseModel):
    caller: str
    amount: int = Field(gt=0)


class TransferRequest(BaseModel):
    caller: str
    to: str
    amount: int = Field(ge=0)


class ApproveRequest(BaseModel):
    caller: str
    spender: str
    amount: int = Field(ge=0)


class TransferFromRequest(BaseModel):
    caller: str  # spender
    owner: str
    to: str
    amount: int = Field(ge=0)


class AdminRequest(BaseModel):
    caller: str


class MinterRequest(BaseModel):
    caller: str
    account: str


class FaucetRequest(BaseModel):
    account: str


class FaucetResponse(BaseModel):
    account: str
    amount: int
    balance: int


class WrappedInfoResponse(BaseModel):
    vault: str
    exchange_rate: int
    total_locked: int
    total_wrapped: int


class WrapRequest(BaseModel):
    caller: str
    amount: int = Field(gt=0)


class WrappedTransferRequest(BaseModel):
    caller: str
    to: str
    amount: int = Field(gt=0)


class WrappedBalanceResponse(BaseModel):
    account: str
    balance: int
    wrapped_balance: int


class WrapCheckResponse(BaseModel):
    account: str
    amount: int
    can_wrap: bool
    can_unwrap: bool
