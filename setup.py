from setuptools import setup, find_packages
import re

# Read version from nominacalc/__init__.py
with open('nominacalc/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='nomina-calc',
    version=version,
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'nominacalc': ['rules/*.yaml', 'rules/sectors/*.yaml'],
    },
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'nomina-calc=nominacalc.cli.__main__:main',
        ],
    },
    author='Personal',
    description='Payroll breakdown engine with pluggable jurisdiction rules and independent audits.',
    python_requires='>=3.10',
)
