# API Routers
from . import authenticity, drugs, safety, verify
