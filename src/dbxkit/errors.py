"""Exception hierarchy.

ConfigError is the only error that escapes a provider call. Everything else
a provider hits at call time is folded into ProviderResponse.error.
"""


class DbxKitError(Exception):
    pass

class ConfigError(DbxKitError):
    pass

class AdapterError(DbxKitError):
    pass

class ValidationError(DbxKitError):
    pass

class PromptParseError(ValidationError):
    pass
