"""Domain-specific exceptions."""


class ServiceError(Exception):
    pass


class StoreError(ServiceError):
    pass


class PluginLoadError(ServiceError):
    pass
