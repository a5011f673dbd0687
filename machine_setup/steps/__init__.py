from .step_10_preflight import PreflightStep
from .step_20_install_packages import InstallPackagesStep
from .step_25_personal_key import PersonalSSHKeyStep
from .step_30_known_hosts import GitHubKnownHostsStep
from .step_40_dotfiles_access import DotfilesAccessStep
from .step_50_chezmoi import ChezmoiStep
from .step_60_vendor_tools import VendorToolsStep
from .step_70_default_shell import DefaultShellStep

__all__ = [
    "PreflightStep",
    "InstallPackagesStep",
    "PersonalSSHKeyStep",
    "GitHubKnownHostsStep",
    "DotfilesAccessStep",
    "ChezmoiStep",
    "VendorToolsStep",
    "DefaultShellStep",
]
