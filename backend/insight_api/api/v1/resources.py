from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from insight_api.core.dependencies import get_db
from insight_api.models.course import Resource
from insight_api.schemas.learning import ResourceCreate, ResourceOut

router = APIRouter()


def _get_resource_or_404(db: Session, resource_id: int) -> Resource:
    resource = db.get(Resource, resource_id)
    if not resource:
        raise HTTPException(404, "Resource not found")
    return resource


@router.get("")
def list_resources(db: Session = Depends(get_db)):
    rows = db.query(Resource).order_by(Resource.id.desc()).all()
    return [ResourceOut.model_validate(r).to_json() for r in rows]


@router.post("", status_code=201)
def create_resource(payload: ResourceCreate, db: Session = Depends(get_db)):
    resource = Resource(
        topic=payload.topic,
        description=payload.description,
        author_name=payload.author_name,
        author_email=payload.author_email.strip().lower(),
        file_url=payload.file_url,
        file_name=payload.file_name,
        date=date.today().isoformat(),
        views=0,
    )
    db.add(resource)
    db.commit()
    db.refresh(resource)
    return ResourceOut.model_validate(resource).to_json()


@router.put("/{resource_id}/view")
def add_view(resource_id: int, db: Session = Depends(get_db)):
    resource = _get_resource_or_404(db, resource_id)
    resource.views = Resource.views + 1
    db.commit()
    db.refresh(resource)
    return ResourceOut.model_validate(resource).to_json()


@router.delete("/{resource_id}")
def delete_resource(resource_id: int, userEmail: str = Query(..., min_length=3), db: Session = Depends(get_db)):
    resource = _get_resource_or_404(db, resource_id)
    if resource.author_email != userEmail.strip().lower():
        raise HTTPException(403, "Unauthorized: You can only delete your own resources")
    db.delete(resource)
    db.commit()
    return {"message": "Resource deleted successfully"}
