"""Configuration persistence core: orchestration, scheduling, migration, archives.

Import from the submodules directly (``photon_config.core.config_manager``);
the storage package depends on ``errors``, ``paths`` and ``logging_utils``
here, so this package does not import eagerly.
"""
