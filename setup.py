from setuptools import setup, find_namespace_packages
import re
from pathlib import Path

_version_re = re.compile(r"^__version__\s*(?::\s*\S+)?\s*=\s*['\"]([^'\"]+)['\"]", re.M)


def file_getVersion(rel_path: str) -> str:
    """
    Retrieve the version string from the specified file.
    """
    version_file = Path(rel_path)
    if not version_file.exists():
        raise RuntimeError(f"Version file {rel_path} not found.")

    with open(version_file, 'r') as f:
        content = f.read()
        match = _version_re.search(content)
        if not match:
            raise RuntimeError(f"Could not find __version__ in {rel_path}")
        return match.group(1)


setup(
    name='termrepl',
    version=file_getVersion('termrepl/termrepl.py'),
    description='An interactive terminal front end for scripting language runtimes',
    packages=find_namespace_packages(include=['termrepl', 'termrepl.*']),
    python_requires='>=3.11',
    install_requires=[
        'prompt_toolkit>=3.0',
        'rich>=13.0',
        'loguru>=0.7',
        'pydantic>=2.0',
        'pydantic-settings>=2.0',
        'appdirs>=1.4',
    ],
    license='MIT',
    entry_points={
        'console_scripts': [
            'termrepl = termrepl.termrepl:main'  # Matches termrepl/termrepl.py
        ]
    },
    classifiers=[
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Environment :: Console',
        'Topic :: Software Development :: Interpreters',
    ],
    extras_require={
        'none': [],
        'dev': [
            'pytest~=7.1',
            'pytest-asyncio>=0.21',
        ]
    }
)
