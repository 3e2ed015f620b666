class Sources:
    """Centralised data source names.

    Each name doubles as the field name of the section in the aggregated
    response body.
    """

    COSTS = "costs"
    RESOURCES = "resources"
    STORAGE = "storage"
    KUBERNETES = "kubernetes"
    VIRTUAL_MACHINES = "virtualMachines"
    SERVICE_HEALTH = "serviceHealth"
    OPENAI_USAGE = "openAIUsage"
    BACKUP_STATUS = "backupStatus"

    ALL_TYPE = "all"

    # Values accepted by the ``type`` request parameter
    REQUEST_TYPES = {
        "resources": RESOURCES,
        "kubernetes": KUBERNETES,
        "vms": VIRTUAL_MACHINES,
        "costs": COSTS,
        "storage": STORAGE,
        "health": SERVICE_HEALTH,
        "openai": OPENAI_USAGE,
        "backups": BACKUP_STATUS,
    }

    @classmethod
    def all_sources(cls) -> list[str]:
        """Every source in response order."""
        return [
            cls.COSTS,
            cls.RESOURCES,
            cls.STORAGE,
            cls.KUBERNETES,
            cls.VIRTUAL_MACHINES,
            cls.SERVICE_HEALTH,
            cls.OPENAI_USAGE,
            cls.BACKUP_STATUS,
        ]

    @classmethod
    def for_request_type(cls, request_type: str) -> str:
        """Resolve a ``type`` parameter value to a source name."""
        name = cls.REQUEST_TYPES.get(request_type.lower())
        if name is None:
            raise ValueError(f"Unknown metric type: {request_type}")
        return name
