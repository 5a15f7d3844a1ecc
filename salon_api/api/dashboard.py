from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from salon_api.core.security import require_admin
from salon_api.db.database import get_db
from salon_api.services import dashboard_service

router = APIRouter()


@router.get("/stats", dependencies=[Depends(require_admin)])
def stats(db: Session = Depends(get_db)):
    return dashboard_service.get_stats(db)
