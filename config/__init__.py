"""Configuration package utilities."""

__all__ = ["ConfigController", "PipelineSettings", "load_pipeline_settings"]


def __getattr__(name: str):
    if name == "ConfigController":
        from config.controller import ConfigController

        return ConfigController
    if name == "PipelineSettings":
        from config.settings import PipelineSettings

        return PipelineSettings
    if name == "load_pipeline_settings":
        from config.settings import load_pipeline_settings

        return load_pipeline_settings
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
