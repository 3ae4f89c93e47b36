"""
Medicines API - registration, import and maintenance of a user's medicines
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool

from medreminder.core.exceptions import MedicineNotFoundError, PrescriptionExtractionError
from medreminder.dependencies import (
    get_current_user_id,
    get_medicine_service,
    get_prescription_extraction_service,
)
from medreminder.schemas.medicine_schemas import (
    ExtractedMedicineImport,
    MedicineCreate,
    MedicineOut,
    MedicineUpdate,
    PrescriptionAnalyzeRequest,
    PrescriptionAnalyzeResponse,
)
from medreminder.services.medicine_service import MedicineService
from medreminder.services.prescription_extraction_service import PrescriptionExtractionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["medicines"])


@router.get("/medicines", response_model=List[MedicineOut])
def list_medicines(
    search: Optional[str] = Query(None, max_length=200),
    active_only: bool = False,
    user_id: str = Depends(get_current_user_id),
    service: MedicineService = Depends(get_medicine_service),
):
    """List the user's medicines, newest first"""
    return service.list_medicines(user_id, search=search, active_only=active_only)


@router.post("/medicines", response_model=MedicineOut, status_code=status.HTTP_201_CREATED)
def add_medicine(
    payload: MedicineCreate,
    user_id: str = Depends(get_current_user_id),
    service: MedicineService = Depends(get_medicine_service),
):
    """Add a medicine by hand and schedule its doses"""
    try:
        return service.add_medicine(user_id, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/medicines/{medicine_id}", response_model=MedicineOut)
def update_medicine(
    medicine_id: str,
    payload: MedicineUpdate,
    user_id: str = Depends(get_current_user_id),
    service: MedicineService = Depends(get_medicine_service),
):
    try:
        return service.update_medicine(user_id, medicine_id, payload)
    except MedicineNotFoundError:
        raise HTTPException(status_code=404, detail="Medicine not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/medicines/{medicine_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_medicine(
    medicine_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MedicineService = Depends(get_medicine_service),
):
    """Delete a medicine and its doses"""
    try:
        service.delete_medicine(user_id, medicine_id)
    except MedicineNotFoundError:
        raise HTTPException(status_code=404, detail="Medicine not found")


@router.post("/medicines/import", response_model=List[MedicineOut], status_code=status.HTTP_201_CREATED)
def import_medicines(
    payload: ExtractedMedicineImport,
    user_id: str = Depends(get_current_user_id),
    service: MedicineService = Depends(get_medicine_service),
):
    """Store medicines extracted from a prescription"""
    return service.import_extracted_medicines(
        user_id, payload.medicines, prescription_id=payload.prescription_id
    )


@router.post("/prescriptions/analyze", response_model=PrescriptionAnalyzeResponse)
async def analyze_prescription(
    payload: PrescriptionAnalyzeRequest,
    user_id: str = Depends(get_current_user_id),
    service: MedicineService = Depends(get_medicine_service),
    extractor: PrescriptionExtractionService = Depends(get_prescription_extraction_service),
):
    """Read medicines off a prescription photo, store them and schedule doses"""
    try:
        medicines = await extractor.extract_medicines(payload.image_url)
    except ValueError:
        raise HTTPException(status_code=503, detail="Prescription analysis is not configured")
    except PrescriptionExtractionError as e:
        logger.error(f"Prescription {payload.prescription_id} analysis failed: {str(e)}")
        raise HTTPException(
            status_code=502 if e.upstream else 400,
            detail=str(e) if not e.upstream else "Failed to process prescription",
        )

    if not medicines:
        raise HTTPException(
            status_code=400,
            detail="No medicines found in the prescription. Please ensure the image is clear and contains a valid prescription.",
        )

    await run_in_threadpool(
        service.import_extracted_medicines,
        user_id,
        medicines,
        prescription_id=payload.prescription_id,
    )

    return PrescriptionAnalyzeResponse(
        success=True,
        medicines=medicines,
        message=f"Successfully extracted {len(medicines)} medicine(s) from prescription",
    )
