"""
SecondMe Context Engine Setup Script

Install with: pip install -e .
"""

from setuptools import setup, find_packages

setup(
    name='secondme-context',
    version='0.1.0',
    description='Contextual retrieval engine for a personal chat-automation bot',
    author='SecondMe Team',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'structlog>=24.1.0',
        'falkordb>=1.0.0',
        'redis>=5.0.1',
        'aiohttp>=3.9.0',
        'pydantic>=2.5.0',
        'pyyaml>=6.0.1',
    ],
    extras_require={
        'test': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.23.0',
        ],
    },
    python_requires='>=3.11',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Communications :: Chat',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
    ],
)
