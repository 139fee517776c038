from typing import Optional


class BaoKimError(Exception):
    pass


class GatewayTransportError(BaoKimError):
    """Сеть/таймаут/не-200/битый ответ шлюза."""

    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class PaymentUserError(BaoKimError):
    """Ошибка, которую можно показать плательщику как есть."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
