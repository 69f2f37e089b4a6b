from mangum import Mangum
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vibeledger.api import create_app
from vibeledger.config import get_settings

settings = get_settings()
if not settings.api_root_path:
    settings = settings.model_copy(update={"api_root_path": "/api"})

app = create_app(settings=settings)

handler = Mangum(app)
