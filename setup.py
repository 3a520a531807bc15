from setuptools import setup, find_packages

setup(
    name="rebalance-sync",
    version="1.0.0",
    author="Rebalance Sync Team",
    description="Keeps a brokerage account in sync with an externally computed strategy allocation",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={
        "brokerage_base": ["py.typed"],
        "tradestation_connector": ["py.typed"],
        "strategy_engine": ["py.typed"],
        "rebalance_sync": ["py.typed"],
    },
    install_requires=[
        "pydantic==2.11.7",
        "aiohttp==3.12.15",
        "PyYAML==6.0.2",
        "click==8.1.8",
        "rich==13.9.4",
    ],
    extras_require={
        "test": [
            "pytest==8.3.5",
            "pytest-asyncio==0.26.0",
            "hypothesis==6.131.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rebalance-sync=rebalance_sync.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
