"""Custom JSON encoding utilities"""
import json
from datetime import date, datetime

from strata_analytics.utils.timeutil import to_iso

class DateTimeEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles datetime and date objects"""
    def default(self, obj):
        if isinstance(obj, datetime):
            return to_iso(obj)
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)

def json_dumps(obj, indent=None):
    """Helper function to dump JSON with datetime handling"""
    return json.dumps(obj, cls=DateTimeEncoder, ensure_ascii=False, indent=indent)
