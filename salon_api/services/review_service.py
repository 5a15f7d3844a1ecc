from datetime import datetime
from typing import Dict, Any, List
from sqlalchemy import func
from sqlalchemy.orm import Session
from salon_api.core.errors import NotFoundError, ValidationError
from salon_api.core.logger import logger
from salon_api.models.db_models import Review
from salon_api.models.schemas import ReviewCreate


def serialize_review(review: Review) -> Dict[str, Any]:
    return {
        "id": review.id,
        "clientName": review.client_name,
        "clientEmail": review.client_email,
        "rating": review.rating,
        "comment": review.comment,
        "isApproved": review.is_approved,
        "isRead": review.is_read,
        "reply": review.reply,
        "replyDate": review.reply_date.isoformat() if review.reply_date else None,
        "createdAt": review.created_at.isoformat() if review.created_at else None,
    }


def _get(db: Session, review_id: str) -> Review:
    review = db.get(Review, review_id)
    if not review:
        raise NotFoundError("Reseña no encontrada")
    return review


def list_approved(db: Session) -> List[Dict[str, Any]]:
    reviews = db.query(Review).filter(Review.is_approved.is_(True)).order_by(Review.created_at.desc()).all()
    return [serialize_review(r) for r in reviews]


def list_all(db: Session) -> List[Dict[str, Any]]:
    reviews = db.query(Review).order_by(Review.created_at.desc()).all()
    return [serialize_review(r) for r in reviews]


def create_review(db: Session, data: ReviewCreate) -> Dict[str, Any]:
    if not 1 <= data.rating <= 5:
        raise ValidationError("La calificación debe estar entre 1 y 5")
    review = Review(
        client_name=data.client_name.strip(),
        client_email=data.client_email,
        rating=data.rating,
        comment=data.comment.strip(),
        is_approved=False,
        is_read=False,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    logger.info(f"⭐ New review ({review.rating}/5) from {review.client_name}")
    return serialize_review(review)


def unread_count(db: Session) -> int:
    return db.query(func.count(Review.id)).filter(Review.is_read.is_(False)).scalar()


def pending_count(db: Session) -> int:
    return db.query(func.count(Review.id)).filter(Review.is_approved.is_(False)).scalar()


def approve(db: Session, review_id: str) -> Dict[str, Any]:
    review = _get(db, review_id)
    review.is_approved = True
    review.is_read = True
    db.commit()
    db.refresh(review)
    logger.info(f"✅ Review approved: {review_id}")
    return serialize_review(review)


def reply(db: Session, review_id: str, text: str) -> Dict[str, Any]:
    review = _get(db, review_id)
    review.reply = text.strip()
    review.reply_date = datetime.utcnow()
    review.is_read = True
    db.commit()
    db.refresh(review)
    return serialize_review(review)


def mark_read(db: Session, review_id: str) -> Dict[str, Any]:
    review = _get(db, review_id)
    review.is_read = True
    db.commit()
    db.refresh(review)
    return serialize_review(review)


def delete_review(db: Session, review_id: str) -> None:
    review = _get(db, review_id)
    db.delete(review)
    db.commit()
    logger.info(f"🗑️ Review deleted: {review_id}")
