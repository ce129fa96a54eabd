# agrichain/models/ledger/request_models.py

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ClaimRoleRequest(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    location: Optional[str] = ""

    @field_validator("name", "phone")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class AddFarmRequest(ClaimRoleRequest):
    farmAddress: str = Field(..., min_length=1)


class CreateProductRequest(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit: str = Field(default="kg")


class ShipRequest(BaseModel):
    quantity: int = Field(..., gt=0)
    destinationAddress: str = Field(..., min_length=1)


class ProcessRequest(BaseModel):
    quantityToProcess: int = Field(..., gt=0)
    newName: str = Field(..., min_length=1)
    newQuantity: int = Field(..., gt=0)
    newUnit: str = Field(default="kg")


class RecipeRequest(BaseModel):
    ingredientIds: List[int] = Field(..., min_length=1)
    quantitiesToUse: List[int] = Field(..., min_length=1)
    outputName: str = Field(..., min_length=1)
    outputQuantity: int = Field(..., gt=0)
    outputUnit: str = Field(default="kg")

    @model_validator(mode="after")
    def _same_length(self):
        if len(self.ingredientIds) != len(self.quantitiesToUse):
            raise ValueError("ingredientIds and quantitiesToUse must have equal length")
        return self


class SellRequest(BaseModel):
    quantity: int = Field(..., gt=0)


class WalletSigninRequest(BaseModel):
    wallet: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)
