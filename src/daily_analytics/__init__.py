"""
Privacy-first daily analytics collector.

Usage:
    from daily_analytics import AnalyticsConfig, setup_analytics

    analytics = setup_analytics(AnalyticsConfig(data_dir="/var/lib/analytics"))

    # Mount the collector API and report page
    app.include_router(analytics.api_router)
    app.include_router(analytics.pages_router)

    # Start/stop the flush and rotation tasks with the app
    await analytics.manager.start()
    await analytics.manager.stop()

    # In templates: {{ analytics.tracking_script() }}

Or run the standalone server with `python -m daily_analytics`.
"""

from .buffer import DailyBuffer
from .config import AnalyticsConfig
from .errors import AnalyticsError, BatchNotFoundError, EventValidationError, StorageError
from .hashing import hash_id
from .models import CanonicalRecord, DailyReport, RawEvent
from .normalizer import normalize
from .report import generate_report
from .rotation import RotationManager
from .routes import create_api_router, create_pages_router
from .storage import JsonFileStorage

__version__ = "0.1.0"
__all__ = [
    "setup_analytics", "Analytics", "AnalyticsConfig",
    "DailyBuffer", "RotationManager", "JsonFileStorage",
    "RawEvent", "CanonicalRecord", "DailyReport",
    "hash_id", "normalize", "generate_report",
    "AnalyticsError", "EventValidationError", "StorageError", "BatchNotFoundError",
]


class Analytics:
    """Main analytics interface: storage, buffer manager and routers."""

    def __init__(self, config: AnalyticsConfig, storage: JsonFileStorage | None = None, clock=None):
        self.config = config
        self.storage = storage or JsonFileStorage(
            config.data_dir, timeout=config.storage_timeout_seconds
        )
        self.manager = RotationManager(
            self.storage,
            flush_every=config.flush_every,
            flush_interval=config.flush_interval_seconds,
            rotation_time=config.rotation_at,
            tz=config.zone,
            clock=clock,
        )
        self.api_router = create_api_router(self.manager)
        self.pages_router = create_pages_router(self.manager)

    def tracking_script(self, endpoint: str = "/api/track") -> str:
        """Generate the tracking script HTML for templates.

        Features:
        - pageview on load, pageleave with time on page when hidden/unloaded
        - Visitor id in localStorage, session id in sessionStorage
        - Referrer classified into a tag on the client; the URL is never sent
        """
        return f'''<script>
(function(){{
  var d=document,w=window,l=location,url="{endpoint}",start=Date.now(),left=false;
  function id(){{return Date.now().toString(36)+Math.random().toString(36).slice(2,10)}}
  var isNew=!localStorage.getItem("_da_vid");
  if(isNew)localStorage.setItem("_da_vid",id());
  if(!sessionStorage.getItem("_da_sid"))sessionStorage.setItem("_da_sid",id());

  function ref(){{
    var r=d.referrer;
    if(!r||r.indexOf(l.hostname)!==-1)return "direct";
    if(/baidu\\./.test(r))return "search_baidu";
    if(/google\\./.test(r))return "search_google";
    if(/weibo\\./.test(r))return "social_weibo";
    if(/zhihu\\./.test(r))return "social_zhihu";
    if(/linkedin\\./.test(r))return "social_linkedin";
    return "other";
  }}

  function send(type,extra){{
    var data={{
      type:type,
      timestamp:Date.now(),
      visitorId:localStorage.getItem("_da_vid"),
      sessionId:sessionStorage.getItem("_da_sid"),
      isNewVisitor:isNew,
      pagePath:l.pathname,
      pageName:d.title,
      referrer:ref()
    }};
    for(var k in extra)data[k]=extra[k];
    var body=JSON.stringify(data);
    if(navigator.sendBeacon){{navigator.sendBeacon(url,new Blob([body],{{type:"application/json"}}));return}}
    fetch(url,{{method:"POST",headers:{{"Content-Type":"application/json"}},body:body,keepalive:true}});
  }}

  send("pageview",{{}});
  function leave(){{if(left)return;left=true;send("pageleave",{{duration:Date.now()-start}})}}
  d.addEventListener("visibilitychange",function(){{if(d.visibilityState==="hidden")leave()}});
  w.addEventListener("pagehide",leave);
}})();
</script>'''


def setup_analytics(config: AnalyticsConfig | None = None, **kwargs) -> Analytics:
    """
    Set up the collector.

    Args:
        config: Collector configuration (defaults to AnalyticsConfig.from_env())
        **kwargs: Passed to Analytics (storage, clock) for tests and embedding

    Returns:
        Analytics instance with manager, api_router, pages_router and tracking_script()
    """
    return Analytics(config or AnalyticsConfig.from_env(), **kwargs)
