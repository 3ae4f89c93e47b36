from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from medreminder.database import get_db
from medreminder.services.dose_schedule_service import DoseScheduleService
from medreminder.services.dose_service import DoseService
from medreminder.services.medicine_service import MedicineService
from medreminder.services.prescription_extraction_service import PrescriptionExtractionService
from medreminder.services.record_store import RecordStore, SqlAlchemyRecordStore
from medreminder.utils.security import verify_token

security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None or not isinstance(user_id, str):
        raise credentials_exception

    return user_id


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    return SqlAlchemyRecordStore(db)


def get_dose_schedule_service(store: RecordStore = Depends(get_record_store)) -> DoseScheduleService:
    return DoseScheduleService(store)


def get_medicine_service(
    store: RecordStore = Depends(get_record_store),
    scheduler: DoseScheduleService = Depends(get_dose_schedule_service),
) -> MedicineService:
    return MedicineService(store, scheduler)


def get_dose_service(
    store: RecordStore = Depends(get_record_store),
    scheduler: DoseScheduleService = Depends(get_dose_schedule_service),
) -> DoseService:
    return DoseService(store, scheduler)


def get_prescription_extraction_service() -> PrescriptionExtractionService:
    return PrescriptionExtractionService()
