from .project_config import DeploySettings, ExecutionMode, load_project_config

__all__ = ["DeploySettings", "ExecutionMode", "load_project_config"]
__version__ = "0.1.0"
