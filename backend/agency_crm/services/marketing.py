# backend/agency_crm/services/marketing.py

from __future__ import annotations

import json
from string import Template
from typing import Optional

from agency_crm.core.logging import get_logger
from agency_crm.schemas.marketing import BrowserEvent
from agency_crm.services import meta_capi
from agency_crm.services.http import HttpClientFactory

log = get_logger(__name__)

NO_PIXEL_SCRIPT = "// No pixel configured"

# Meta base pixel, plus a wrapper around fbq() that mirrors every
# track/trackCustom call to our events endpoint for server-side delivery.
_PIXEL_TEMPLATE = Template(
    """
!function(f,b,e,v,n,t,s)
{if(f.fbq)return;n=f.fbq=function(){n.callMethod?
n.callMethod.apply(n,arguments):n.queue.push(arguments)};
if(!f._fbq)f._fbq=n;n.push=n;n.loaded=!0;n.version='2.0';
n.queue=[];t=b.createElement(e);t.async=!0;
t.src=v;s=b.getElementsByTagName(e)[0];
s.parentNode.insertBefore(t,s)}(window, document,'script',
'https://connect.facebook.net/en_US/fbevents.js');

fbq('init', $pixel_id);
fbq('track', 'PageView');

(function() {
  var originalFbq = window.fbq;
  window.fbq = function() {
    originalFbq.apply(this, arguments);
    var args = Array.prototype.slice.call(arguments);
    if (args[0] !== 'track' && args[0] !== 'trackCustom') return;
    var payload = {
      eventName: args[1],
      eventData: args[2] || {},
      url: window.location.href,
      userAgent: navigator.userAgent,
      timestamp: Math.floor(Date.now() / 1000),
      eventId: 'evt_' + Math.random().toString(36).substr(2, 9)
    };
    fetch($endpoint_url, {
      method: 'POST',
      headers: { 'Content-Type': 'application/json' },
      body: JSON.stringify(payload),
      keepalive: true
    }).catch(console.error);
  };
  Object.keys(originalFbq).forEach(function(key) { window.fbq[key] = originalFbq[key]; });
})();
"""
)


def generate_pixel_script(pixel_id: str, endpoint_url: str) -> str:
    # json.dumps quotes and escapes both values for embedding in JS
    return _PIXEL_TEMPLATE.substitute(
        pixel_id=json.dumps(pixel_id),
        endpoint_url=json.dumps(endpoint_url),
    )


async def forward_browser_event(
    http_client_factory: HttpClientFactory,
    *,
    pixel_id: str,
    access_token: str,
    event: BrowserEvent,
    client_ip: Optional[str],
) -> meta_capi.CapiResult:
    server_event = meta_capi.build_server_event(
        event_name=event.event_name,
        event_id=event.event_id,
        url=event.url,
        user_data=meta_capi.build_user_data(
            event.event_data,
            client_ip=client_ip,
            user_agent=event.user_agent,
            include_identifiers=False,
        ),
        custom_data=dict(event.event_data),
        event_time=event.timestamp,
    )

    async with http_client_factory() as http:
        result = await meta_capi.post_events(
            http,
            pixel_id=pixel_id,
            access_token=access_token,
            events=[server_event],
        )

    if not result.success:
        log.warning("marketing_event_not_delivered", pixel_id=pixel_id, status_code=result.code)
    return result
