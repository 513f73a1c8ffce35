"""Backend selection: turn a validated configuration into one logical store.

Validation runs first and touches no network or hardware, so an
inconsistent configuration (for example two buckets but three KMS keys)
fails before any client is created. If building fails halfway, whatever was
already built is closed and a ``ConfigurationError`` is raised; a partially
usable store is never returned.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from sealstore.config.schema import MODES, StoreConfig
from sealstore.errors import ConfigurationError
from sealstore.kms.base import EnvelopeService
from sealstore.kv.base import Service
from sealstore.kv.multi import MultiService

logger = logging.getLogger(__name__)


def _missing(section: str, values: dict[str, object]) -> list[str]:
    return [f"{section}.{name}" for name, value in values.items() if not value]


def _aws_problems(config: StoreConfig) -> list[str]:
    aws = config.aws
    lists = {
        "s3_regions": aws.s3_regions,
        "s3_buckets": aws.s3_buckets,
        "kms_regions": aws.kms_regions,
        "kms_key_ids": aws.kms_key_ids,
    }
    problems = [f"aws.{name}" for name, values in lists.items() if not values]
    if problems:
        return problems

    expected = len(aws.s3_regions)
    mismatched = [
        f"{name} ({len(values)})" for name, values in lists.items() if len(values) != expected
    ]
    if mismatched:
        raise ConfigurationError(
            "specify the same number of entries for every AWS region list: "
            f"{', '.join(mismatched)} != s3_regions ({expected})"
        )

    for name, values in lists.items():
        if any(not v for v in values):
            problems.append(f"aws.{name} (empty entry)")
    return problems


def validate_config(config: StoreConfig) -> None:
    """Check mode-specific required parameters and cross-field invariants.

    Args:
        config: Configuration to check

    Raises:
        ConfigurationError: Naming every missing parameter, or the lists
            whose lengths disagree
    """
    mode = config.mode
    if mode not in MODES:
        raise ConfigurationError(f"unsupported backend mode: '{mode}'")

    problems: list[str] = []

    if mode == "gcp-kms-gcs":
        gcp = config.gcp
        problems += _missing(
            "gcp",
            {
                "storage_bucket": gcp.storage_bucket,
                "kms_project": gcp.kms_project,
                "kms_location": gcp.kms_location,
                "kms_key_ring": gcp.kms_key_ring,
                "kms_crypto_key": gcp.kms_crypto_key,
            },
        )
    elif mode == "aws-kms-s3":
        problems += _aws_problems(config)
    elif mode == "azure-kv":
        problems += _missing("azure", {"key_vault_name": config.azure.key_vault_name})
    elif mode == "alibaba-kms-oss":
        ali = config.alibaba
        if not ali.access_key_id or not ali.access_key_secret.get_secret_value():
            raise ConfigurationError("Alibaba access_key_id or access_key_secret can't be empty")
        problems += _missing(
            "alibaba",
            {
                "oss_endpoint": ali.oss_endpoint,
                "oss_bucket": ali.oss_bucket,
                "kms_region": ali.kms_region,
                "kms_key_id": ali.kms_key_id,
            },
        )
    elif mode == "vault":
        problems += _missing(
            "vault",
            {"address": config.vault.address, "unseal_keys_path": config.vault.unseal_keys_path},
        )
    elif mode == "file":
        problems += _missing("file", {"path": config.file.path})

    if mode in ("k8s", "hsm-k8s"):
        problems += _missing(
            "k8s",
            {"namespace": config.k8s.namespace, "secret_name": config.k8s.secret_name},
        )
    if mode in ("hsm", "hsm-k8s"):
        hsm = config.hsm
        problems += _missing(
            "hsm",
            {
                "module_path": hsm.module_path,
                "pin": hsm.pin.get_secret_value(),
                "key_label": hsm.key_label,
            },
        )
        if hsm.slot_id is None and not hsm.token_label:
            problems.append("hsm.slot_id or hsm.token_label")

    if problems:
        raise ConfigurationError(f"missing configuration for mode {mode}: {', '.join(problems)}")


def _gcp(config: StoreConfig, created: list[Service]) -> Service:
    from sealstore.kms.gckms import GoogleCloudKMS
    from sealstore.kv.gcs import GCSService

    gcp = config.gcp
    gcs = GCSService(gcp.storage_bucket, gcp.storage_prefix)
    created.append(gcs)
    kms = GoogleCloudKMS(gcp.kms_project, gcp.kms_location, gcp.kms_key_ring, gcp.kms_crypto_key)
    return EnvelopeService(gcs, kms)


def _aws(config: StoreConfig, created: list[Service]) -> Service:
    from sealstore.kms.awskms import AWSKMS
    from sealstore.kv.s3 import S3Service

    aws = config.aws
    services: list[Service] = []
    for s3_region, bucket, kms_region, key_id in zip(
        aws.s3_regions, aws.s3_buckets, aws.kms_regions, aws.kms_key_ids
    ):
        s3 = S3Service(s3_region, bucket, aws.s3_prefix)
        created.append(s3)
        envelope = EnvelopeService(s3, AWSKMS(kms_region, key_id))
        # Closing the envelope closes both the bucket and its key manager
        created[-1] = envelope
        services.append(envelope)

    if len(services) == 1:
        return services[0]
    return MultiService(services, parallel=config.parallel_writes)


def _azure(config: StoreConfig, created: list[Service]) -> Service:
    from sealstore.kv.azurekv import AzureKeyVaultService

    return AzureKeyVaultService(config.azure.key_vault_name)


def _alibaba(config: StoreConfig, created: list[Service]) -> Service:
    from sealstore.kms.alibabakms import AlibabaKMS
    from sealstore.kv.oss import OSSService

    ali = config.alibaba
    secret = ali.access_key_secret.get_secret_value()
    oss = OSSService(ali.oss_endpoint, ali.access_key_id, secret, ali.oss_bucket, ali.oss_prefix)
    created.append(oss)
    kms = AlibabaKMS(ali.kms_region, ali.access_key_id, secret, ali.kms_key_id)
    return EnvelopeService(oss, kms)


def _vault(config: StoreConfig, created: list[Service]) -> Service:
    from sealstore.kv.vault import VaultService

    v = config.vault
    return VaultService(
        v.address,
        v.unseal_keys_path,
        role=v.role,
        auth_path=v.auth_path,
        token_path=v.token_path,
        token=v.token.get_secret_value(),
    )


def _k8s_secret(config: StoreConfig) -> Service:
    from sealstore.kv.k8s import KubernetesSecretService

    k = config.k8s
    return KubernetesSecretService(k.namespace, k.secret_name, k.secret_labels)


def _k8s(config: StoreConfig, created: list[Service]) -> Service:
    return _k8s_secret(config)


def _hsm_k8s(config: StoreConfig, created: list[Service]) -> Service:
    from sealstore.hsm import HSMService

    secret_store = _k8s_secret(config)
    created.append(secret_store)
    return HSMService(config.hsm, inner=secret_store)


def _hsm(config: StoreConfig, created: list[Service]) -> Service:
    from sealstore.hsm import HSMService

    return HSMService(config.hsm)


def _dev(config: StoreConfig, created: list[Service]) -> Service:
    from sealstore.kv.memory import dev_service

    return dev_service()


def _file(config: StoreConfig, created: list[Service]) -> Service:
    from sealstore.kms.fernet import FernetKeyManager
    from sealstore.kv.file import FileService

    store = FileService(Path(config.file.path))
    key = config.file.fernet_key.get_secret_value()
    if not key:
        return store
    created.append(store)
    return EnvelopeService(store, FernetKeyManager(key))


BUILDERS: dict[str, Callable[[StoreConfig, list[Service]], Service]] = {
    "gcp-kms-gcs": _gcp,
    "aws-kms-s3": _aws,
    "azure-kv": _azure,
    "alibaba-kms-oss": _alibaba,
    "vault": _vault,
    "k8s": _k8s,
    "hsm": _hsm,
    "hsm-k8s": _hsm_k8s,
    "dev": _dev,
    "file": _file,
}


def create_service(config: StoreConfig) -> Service:
    """Build the logical store described by a configuration.

    Args:
        config: Loaded configuration

    Returns:
        Ready-to-use store; callers own it and should close it at exit

    Raises:
        ConfigurationError: If the configuration is invalid or any backend
            cannot be constructed
    """
    validate_config(config)
    builder = BUILDERS[config.mode]

    created: list[Service] = []
    try:
        service = builder(config, created)
    except Exception as e:
        for partial in reversed(created):
            try:
                partial.close()
            except Exception:
                logger.exception(f"Failed to close {partial.name} after construction error")
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(f"error creating {config.mode} store: {e}") from e

    logger.info(f"Created {config.mode} store: {service.name}")
    return service
