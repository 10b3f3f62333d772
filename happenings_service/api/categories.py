from typing import List

from fastapi import APIRouter, Depends

from happenings_service.api.deps import Services, get_services
from happenings_service.models import Category

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=List[Category])
async def get_categories(services: Services = Depends(get_services)) -> List[Category]:
  return await services.categories.list_top_categories()
