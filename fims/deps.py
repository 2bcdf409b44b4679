# fims/deps.py
from fims.certificate import CertificateDocumentBuilder
from fims.certificate_service import CertificateService
from fims.config import CertificateConfig, Settings, get_settings
from fims.qr import LocalQrProvider, QrCodeProvider, RemoteQrProvider


def build_qr_provider(settings: Settings) -> QrCodeProvider:
    if settings.qr_mode == "remote":
        return RemoteQrProvider(settings.qr_endpoint, timeout=settings.qr_timeout_seconds)
    return LocalQrProvider()


def get_certificate_service() -> CertificateService:
    settings = get_settings()
    builder = CertificateDocumentBuilder(
        CertificateConfig.from_settings(settings),
        qr_provider=build_qr_provider(settings),
    )
    return CertificateService(builder)
