# Schemas package (re-export feature modules for stable imports)
from .availability.availability import *
from .appointments.appointment import *
from .common.common import *
