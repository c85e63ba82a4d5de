"""
Static catalogue endpoints: packs and venue layout.
"""

from fastapi import APIRouter

from seating.core.layout import SEATS_PER_TABLE, TABLE_COUNT, table_rows
from seating.schemas.pack import PackInfo, pack_catalogue
from seating.schemas.seat import LayoutResponse

router = APIRouter(tags=["Catalogue"])


@router.get("/packs", response_model=list[PackInfo])
async def list_packs():
    return pack_catalogue()


@router.get("/layout", response_model=LayoutResponse)
async def get_layout():
    return LayoutResponse(table_count=TABLE_COUNT, seats_per_table=SEATS_PER_TABLE, rows=table_rows())
