"""Step template catalog API."""

from fastapi import APIRouter, Depends

from flowstudio.api.deps import get_gateway
from flowstudio.api.schemas import TemplateListResponse, TemplateResponse
from flowstudio.services.persistence import PersistenceGateway

router = APIRouter(tags=["Templates"])


@router.get("/templates", response_model=TemplateListResponse)
async def list_templates(gateway: PersistenceGateway = Depends(get_gateway)) -> TemplateListResponse:
    """Built-in templates overlaid with the step types already stored."""
    catalog = await gateway.list_templates()
    templates = [TemplateResponse.from_template(template) for template in catalog.list_templates()]
    return TemplateListResponse(templates=templates, total=len(templates))
