"""Per-line annotation endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..bootstrap import AppServices
from ..core.context import Caller
from ..db.models import LineAnnotation
from ..exceptions import ConflictError, NotFoundError
from ..models import AnnotationRequest, AnnotationResponse
from .deps import get_caller, get_services

router = APIRouter(prefix="/line-annotations", tags=["annotations"])


def annotation_to_response(annotation: LineAnnotation) -> AnnotationResponse:
    """Convert LineAnnotation to AnnotationResponse."""
    return AnnotationResponse(
        id=annotation.id,
        line_id=annotation.line_id,
        text=annotation.text,
        emoji=annotation.emoji,
        created_at=annotation.created_at,
        updated_at=annotation.updated_at,
    )


@router.get("", response_model=list[AnnotationResponse])
def list_annotations(
    line_id: str = Query(...),
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> list[AnnotationResponse]:
    """List the caller's annotations on a line."""
    try:
        annotations = app_services.annotations.list_for_line(caller, line_id)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    return [annotation_to_response(a) for a in annotations]


@router.post("/{line_id}", response_model=AnnotationResponse, status_code=201)
def create_annotation(
    line_id: str,
    request: AnnotationRequest,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> AnnotationResponse:
    """Annotate a line of one of the caller's songs."""
    try:
        annotation = app_services.annotations.create(caller, line_id, request.text, request.emoji)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    except ConflictError as e:
        raise HTTPException(409, str(e))
    return annotation_to_response(annotation)


@router.patch("/{annotation_id}", response_model=AnnotationResponse)
def update_annotation(
    annotation_id: str,
    request: AnnotationRequest,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> AnnotationResponse:
    """Replace the text and emoji of an annotation."""
    try:
        annotation = app_services.annotations.update(caller, annotation_id, request.text, request.emoji)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    return annotation_to_response(annotation)


@router.delete("/{annotation_id}", status_code=204)
def delete_annotation(
    annotation_id: str,
    caller: Caller = Depends(get_caller),
    app_services: AppServices = Depends(get_services),
) -> Response:
    """Delete an annotation."""
    try:
        app_services.annotations.delete(caller, annotation_id)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    return Response(status_code=204)
