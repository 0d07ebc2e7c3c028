"""Best-effort hosting provider detection from response headers."""

from typing import Dict

from models import ProviderInfo, Providers


def classify(headers: Dict[str, str]) -> ProviderInfo:
    names = [k.lower() for k in headers]
    server = next((v for k, v in headers.items() if k.lower() == "server"), None)
    return ProviderInfo(
        providers=Providers(
            cloudflare=any(n.startswith("cf-") for n in names),
            railway=server == "railway",
            vercel=any(n.startswith("x-vercel-") for n in names) or server == "Vercel",
        )
    )
