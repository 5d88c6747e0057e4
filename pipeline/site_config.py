"""
Site Config - загрузка site.yaml

Пример:

    site:
      name: My Site
      url: https://example.com
    resources: Resources
    deploy:
      - method: git
        remote: git@github.com:me/me.github.io.git
        branch: gh-pages
        target_folder: docs
      - method: command
        run: ["rsync", "-a", "{output}/", "host:/var/www"]
"""

import yaml
from pathlib import Path
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field

from core.exceptions import ConfigError, SiteConfigError
from deployment.method import DeploymentMethod
from .site import Site
from .step import PublishingStep, copy_resources, deploy


DEPLOY_METHODS = ("git", "command")


@dataclass
class SiteConfig:
    """Конфигурация сайта из YAML"""
    site: Site
    resources: Optional[str] = None
    deployment_methods: List[DeploymentMethod] = field(default_factory=list)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "SiteConfig":
        """Загрузить из YAML файла

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            SiteConfigError: If configuration is invalid
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Site config not found: {yaml_path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SiteConfigError(f"Invalid YAML in {yaml_path}: {e}")

        if data is None:
            raise SiteConfigError(f"Empty YAML file: {yaml_path}")

        if not isinstance(data, dict):
            raise SiteConfigError(f"Top level of {yaml_path} must be a mapping")

        return cls.from_dict(data, source=yaml_path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<dict>") -> "SiteConfig":
        all_errors = []

        site_data = data.get('site')
        site = None
        if not isinstance(site_data, dict):
            all_errors.append("Missing 'site' section")
        elif not site_data.get('name') or not str(site_data['name']).strip():
            all_errors.append("site: 'name' is required")
        else:
            site = Site(
                name=str(site_data['name']),
                url=str(site_data.get('url', '')),
                description=str(site_data.get('description', '')),
                language=str(site_data.get('language', 'en'))
            )

        resources = data.get('resources')
        if resources is not None and not isinstance(resources, str):
            all_errors.append("'resources' must be a folder name")

        methods = []
        deploy_data = data.get('deploy', [])
        if deploy_data is None:
            deploy_data = []
        if not isinstance(deploy_data, list):
            all_errors.append("'deploy' must be a list")
            deploy_data = []

        for i, method_data in enumerate(deploy_data):
            method, errors = _parse_method(i, method_data)
            all_errors.extend(errors)
            if method is not None:
                methods.append(method)

        if all_errors:
            raise SiteConfigError(
                f"Site configuration errors in {source}:\n" + "\n".join(f"  - {e}" for e in all_errors)
            )

        return cls(site=site, resources=resources, deployment_methods=methods)

    def build_steps(self) -> List[PublishingStep]:
        """Шаги pipeline для этой конфигурации"""
        steps = []
        if self.resources:
            steps.append(copy_resources(self.resources))
        steps.extend(deploy(method) for method in self.deployment_methods)
        return steps


def _parse_method(index: int, method_data: Any):
    """Returns (method or None, errors)"""
    if not isinstance(method_data, dict):
        return None, [f"deploy[{index}]: must be a dictionary"]

    kind = method_data.get('method')
    if kind not in DEPLOY_METHODS:
        return None, [f"deploy[{index}]: 'method' must be one of {', '.join(DEPLOY_METHODS)}, got {kind!r}"]

    if kind == 'git':
        if not method_data.get('remote'):
            return None, [f"deploy[{index}]: git method needs 'remote'"]
        errors = [
            f"deploy[{index}]: '{key}' must be a string, got {method_data[key]!r}"
            for key in ('branch', 'target_folder')
            if method_data.get(key) is not None and not isinstance(method_data[key], str)
        ]
        if errors:
            return None, errors
        try:
            return DeploymentMethod.git(
                str(method_data['remote']),
                branch=method_data.get('branch'),
                target_folder_path=method_data.get('target_folder')
            ), []
        except ConfigError as e:
            return None, [f"deploy[{index}]: {e}"]

    run = method_data.get('run')
    if not run or not isinstance(run, (str, list)):
        return None, [f"deploy[{index}]: command method needs 'run' (string or list)"]
    try:
        return DeploymentMethod.command(
            run if isinstance(run, str) else [str(a) for a in run],
            name=method_data.get('name')
        ), []
    except ValueError as e:
        return None, [f"deploy[{index}]: {e}"]


def load_site_config(root_folder: Path, file_name: str = "site.yaml") -> SiteConfig:
    """Загрузить site.yaml из корня сайта"""
    return SiteConfig.from_yaml(str(Path(root_folder) / file_name))
