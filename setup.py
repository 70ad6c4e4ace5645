"""Setup script for the movelist Python package."""

import os
from glob import glob
from setuptools import setup, find_packages

package_name = 'movelist'


def get_package_data():
    """Collect bundled data files (config defaults)."""
    config_dir = os.path.join(os.path.dirname(__file__), package_name, 'config')
    config_files = [os.path.basename(p) for p in glob(os.path.join(config_dir, '*.yaml'))]
    return {f'{package_name}.config': config_files or ['loader_config.yaml']}


setup(
    name=package_name,
    version='0.1.0',
    packages=find_packages(exclude=['test', 'test.*']),
    package_data=get_package_data(),
    include_package_data=True,
    install_requires=[
        'setuptools',
        'pyyaml>=6.0',
        'numpy>=1.21.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
        ],
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
            'black>=23.0.0',
            'isort>=5.12.0',
            'mypy>=1.0.0',
            'flake8>=6.0.0',
        ],
    },
    zip_safe=True,
    maintainer='movelist Team',
    maintainer_email='maintainer@example.com',
    description='Move-list format detection and decoding for 2D fighting game character data',
    license='MIT',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'movelist_dump = movelist.tools.dump:main',
        ],
    },
    python_requires='>=3.10',
)
