from medreminder.models.medicine import Medicine, MedicineDose, DoseStatus

__all__ = [
    "Medicine",
    "MedicineDose",
    "DoseStatus",
]
