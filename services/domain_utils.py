from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import urlparse

import tldextract


# Bundled public suffix snapshot only; never fetch the list over the network
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())


def extract_apex_domain(url_or_domain: Optional[str]) -> Optional[str]:
    if not url_or_domain:
        return None
    text = str(url_or_domain).strip().lower()
    if not text.startswith('http://') and not text.startswith('https://'):
        text = f"http://{text}"
    ext = _EXTRACT(text)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return None


def is_supported_crm_url(url: Optional[str], domains: Iterable[str]) -> bool:
    """True for https pages whose registered domain is one of ``domains``.

    "acme.lightning.force.com" and "acme.my.salesforce.com" reduce to
    "force.com" and "salesforce.com".
    """
    if not url:
        return False
    parsed = urlparse(url)
    if parsed.scheme != 'https' or not parsed.netloc:
        return False
    apex = extract_apex_domain(parsed.hostname)
    return apex is not None and apex in {d.lower() for d in domains}
