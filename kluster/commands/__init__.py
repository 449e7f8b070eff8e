from . import contexts, destroy, kubeconfig, releases, start, version

__all__ = ['contexts', 'destroy', 'kubeconfig', 'releases', 'start', 'version']
