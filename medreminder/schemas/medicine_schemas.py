"""
Pydantic schemas for medicines, doses and prescription extraction.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import date, datetime


class MedicineRecord(BaseModel):
    """A medicine row as the scheduling core sees it"""
    id: str
    user_id: str
    medicine_name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: str = ""
    instructions: Optional[str] = None
    duration_days: Optional[int] = None
    prescription_id: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    active: bool = True


class MedicineCreate(BaseModel):
    medicine_name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=200)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructions: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class MedicineUpdate(BaseModel):
    medicine_name: Optional[str] = Field(None, min_length=1, max_length=200)
    dosage: Optional[str] = Field(None, min_length=1, max_length=100)
    frequency: Optional[str] = Field(None, min_length=1, max_length=200)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructions: Optional[str] = Field(None, max_length=1000)
    active: Optional[bool] = None


class MedicineOut(BaseModel):
    id: str
    medicine_name: str
    dosage: str
    frequency: str
    instructions: Optional[str] = None
    duration_days: Optional[int] = None
    prescription_id: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    active: bool


class DoseOut(BaseModel):
    id: str
    medicine_id: str
    scheduled_time: datetime
    status: str
    taken_at: Optional[datetime] = None
    medicine_name: Optional[str] = None
    dosage: Optional[str] = None


class DashboardSummary(BaseModel):
    active_medicines: int
    today_taken: int
    today_total: int
    upcoming_count: int
    upcoming: List[DoseOut]


class GenerationResult(BaseModel):
    doses_created: int


class ExtractedMedicine(BaseModel):
    """One candidate medicine read off a prescription"""
    medicine_name: str = Field(..., min_length=1)
    dosage: str = ""
    frequency: str = ""
    duration_days: Optional[int] = Field(None, ge=1)
    instructions: Optional[str] = None

    @field_validator("dosage", "frequency", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("duration_days", mode="before")
    @classmethod
    def blank_duration(cls, v):
        if v in ("", 0):
            return None
        return v


class ExtractedMedicineImport(BaseModel):
    prescription_id: Optional[str] = None
    medicines: List[ExtractedMedicine] = Field(..., min_length=1)


class PrescriptionAnalyzeRequest(BaseModel):
    prescription_id: str = Field(..., min_length=1)
    image_url: str = Field(..., min_length=1)


class PrescriptionAnalyzeResponse(BaseModel):
    success: bool
    medicines: List[ExtractedMedicine]
    message: str
