from typing import Dict

from .base import PaymentProvider
from .baokim.adapter import BaoKimAdapter

# Инициализируем адаптеры
_registry: Dict[str, PaymentProvider] = {
    "tpb_baokim": BaoKimAdapter(),
}

# Алиасы имён провайдеров → канонические ключи реестра
_aliases = {
    "baokim": "tpb_baokim",
    "bao_kim": "tpb_baokim",
    "tpb_baokim": "tpb_baokim",
}

def get_provider_by_name(name: str | None):
    if not name:
        return None
    key = _aliases.get(name.strip().lower(), name)
    return _registry.get(key)

def close_providers():
    for provider in _registry.values():
        bank_list = getattr(provider, "bank_list", None)
        if bank_list is not None:
            bank_list.clear()
