from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from foodshare.core.security import get_current_actor
from foodshare.deps import get_repo
from foodshare.schemas import DonationStats
from foodshare.services.stats import plot_monthly_png

# signed-in users only, like the rest of the donation views
router = APIRouter(prefix="/api/stats", tags=["stats"], dependencies=[Depends(get_current_actor)])


@router.get("/overview", response_model=DonationStats)
async def overview(repo=Depends(get_repo)):
    return await repo.compute_stats()


@router.get("/plots/monthly.png")
async def monthly_plot(repo=Depends(get_repo)):
    buf = plot_monthly_png(await repo.compute_stats())
    return StreamingResponse(buf, media_type="image/png")
