# app/routers/content_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from app.db import get_session
from app.deps import require_permission
from app.models import ReviewsConfig, Testimonial, utcnow
from app.permissions import PermissionKey
from app.schemas import (
    ReviewsConfigPublic, ReviewsConfigUpdate, TestimonialCreate, TestimonialPublic,
    TestimonialUpdate,
)

router = APIRouter(
    tags=["content"],
)


def get_reviews_config(session: Session) -> ReviewsConfig:
    """Latest reviews summary row, created with a 5.0 / 0 default when the table is empty."""
    config = session.exec(
        select(ReviewsConfig).order_by(ReviewsConfig.updated_at.desc(), ReviewsConfig.id.desc())
    ).first()
    if config is None:
        config = ReviewsConfig()
        session.add(config)
        session.commit()
        session.refresh(config)
    return config


@router.get("/testimonials", response_model=List[TestimonialPublic])
def list_testimonials(session: Session = Depends(get_session)):
    stmt = (
        select(Testimonial)
        .where(Testimonial.is_active == True)  # noqa: E712
        .order_by(Testimonial.created_at.desc(), Testimonial.id.desc())
    )
    return session.exec(stmt).all()


@router.get(
    "/admin/testimonials",
    response_model=List[TestimonialPublic],
    dependencies=[Depends(require_permission(PermissionKey.view_testimonials))],
)
def list_all_testimonials(session: Session = Depends(get_session)):
    stmt = select(Testimonial).order_by(Testimonial.created_at.desc(), Testimonial.id.desc())
    return session.exec(stmt).all()


@router.post(
    "/admin/testimonials",
    response_model=TestimonialPublic,
    status_code=201,
    dependencies=[Depends(require_permission(PermissionKey.manage_testimonials))],
)
def create_testimonial(testimonial: TestimonialCreate, session: Session = Depends(get_session)):
    db_testimonial = Testimonial(**testimonial.model_dump())
    session.add(db_testimonial)
    session.commit()
    session.refresh(db_testimonial)
    return db_testimonial


@router.patch(
    "/admin/testimonials/{testimonial_id}",
    response_model=TestimonialPublic,
    dependencies=[Depends(require_permission(PermissionKey.manage_testimonials))],
)
def update_testimonial(
    testimonial_id: int,
    updates: TestimonialUpdate,
    session: Session = Depends(get_session),
):
    db_testimonial = session.get(Testimonial, testimonial_id)
    if db_testimonial is None:
        raise HTTPException(status_code=404, detail="Testimonial not found")

    for field, value in updates.model_dump(exclude_unset=True).items():
        if value is None and field != "customer_image_url":
            continue
        setattr(db_testimonial, field, value)

    session.add(db_testimonial)
    session.commit()
    session.refresh(db_testimonial)
    return db_testimonial


@router.delete(
    "/admin/testimonials/{testimonial_id}",
    status_code=204,
    dependencies=[Depends(require_permission(PermissionKey.manage_testimonials))],
)
def delete_testimonial(testimonial_id: int, session: Session = Depends(get_session)):
    db_testimonial = session.get(Testimonial, testimonial_id)
    if db_testimonial is None:
        raise HTTPException(status_code=404, detail="Testimonial not found")
    session.delete(db_testimonial)
    session.commit()


@router.get("/reviews-config", response_model=ReviewsConfigPublic)
def reviews_summary(session: Session = Depends(get_session)):
    return get_reviews_config(session)


@router.get(
    "/admin/reviews-config",
    response_model=ReviewsConfigPublic,
    dependencies=[Depends(require_permission(PermissionKey.view_reviews))],
)
def admin_reviews_summary(session: Session = Depends(get_session)):
    return get_reviews_config(session)


@router.patch(
    "/admin/reviews-config",
    response_model=ReviewsConfigPublic,
    dependencies=[Depends(require_permission(PermissionKey.manage_reviews))],
)
def update_reviews_config(updates: ReviewsConfigUpdate, session: Session = Depends(get_session)):
    config = get_reviews_config(session)
    for field, value in updates.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(config, field, value)
    config.updated_at = utcnow()

    session.add(config)
    session.commit()
    session.refresh(config)
    return config
