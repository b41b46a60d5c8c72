# aQRo Database Models
# Import all models here for SQLAlchemy discovery

from aqro.models.user import User                                           # noqa
from aqro.models.restaurant import Restaurant                               # noqa
from aqro.models.container_type import ContainerType                        # noqa
from aqro.models.container import Container                                 # noqa
from aqro.models.restaurant_container_rebate import RestaurantContainerRebate  # noqa
from aqro.models.rebate import Rebate                                       # noqa
from aqro.models.activity import Activity                                   # noqa
