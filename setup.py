from setuptools import setup, find_packages

setup(
    name='kluster',
    version='0.1.0',
    packages=find_packages(exclude=['kluster.tests', 'kluster.tests.*']),
    include_package_data=True,
    install_requires=[
        'typer>=0.15',
        'requests',
        'PyYAML',
        'pydantic>=2',
        'jsonschema',
        'python-dotenv',
    ],
    extras_require={
        'test': [
            'pytest',
        ]
    },
    entry_points={
        'console_scripts': [
            'kluster=kluster.cli:app'
        ]
    },
    author='Your Name',
    description='Run single-node k3s clusters on multipass VMs and keep your kubeconfig in sync',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
)
