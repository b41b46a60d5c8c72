# aqro/schemas/stats.py
from aqro.schemas.base import CamelModel


class ContainerStatsOut(CamelModel):
    active_containers: int
    returned_containers: int
    lost_containers: int
    damaged_containers: int
    expired_containers: int
    total_rebate: float


class RestaurantStatsOut(ContainerStatsOut):
    restaurant_id: int
    available_containers: int
    rebate_count: int
