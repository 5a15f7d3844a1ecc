from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from salon_api.core.security import require_admin
from salon_api.db.database import get_db
from salon_api.models.schemas import ReviewCreate, ReviewReply
from salon_api.services import review_service

router = APIRouter()


@router.get("")
def approved_reviews(db: Session = Depends(get_db)):
    return review_service.list_approved(db)


@router.post("", status_code=201)
def create_review(req: ReviewCreate, db: Session = Depends(get_db)):
    return review_service.create_review(db, req)


@router.get("/all", dependencies=[Depends(require_admin)])
def all_reviews(db: Session = Depends(get_db)):
    return review_service.list_all(db)


@router.get("/unread/count", dependencies=[Depends(require_admin)])
def unread_count(db: Session = Depends(get_db)):
    return {"count": review_service.unread_count(db)}


@router.get("/pending/count", dependencies=[Depends(require_admin)])
def pending_count(db: Session = Depends(get_db)):
    return {"count": review_service.pending_count(db)}


@router.put("/{review_id}/approve", dependencies=[Depends(require_admin)])
def approve(review_id: str, db: Session = Depends(get_db)):
    return review_service.approve(db, review_id)


@router.put("/{review_id}/reply", dependencies=[Depends(require_admin)])
def reply(review_id: str, req: ReviewReply, db: Session = Depends(get_db)):
    return review_service.reply(db, review_id, req.reply)


@router.put("/{review_id}/read", dependencies=[Depends(require_admin)])
def mark_read(review_id: str, db: Session = Depends(get_db)):
    return review_service.mark_read(db, review_id)


@router.delete("/{review_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_review(review_id: str, db: Session = Depends(get_db)):
    review_service.delete_review(db, review_id)
    return Response(status_code=204)
