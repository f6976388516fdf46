"""Service tag bound to every log record: `{service}@{env}:{instance}`."""

import os
from functools import lru_cache


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'checkout-service')
    deploy_env = os.getenv('DEPLOY_ENV', 'local')
    # Replicas behind a load balancer set INSTANCE_ID; a bare process falls back to its pid
    instance = os.getenv('INSTANCE_ID') or str(os.getpid())
    return f'{service_name}@{deploy_env}:{instance}'
