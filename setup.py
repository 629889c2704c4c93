from setuptools import find_packages, setup

if __name__ == "__main__":
    setup(
        name="flyway-squash",
        version="1.0.0",
        packages=find_packages(exclude=["tests", "tests.*"]),
        py_modules=["squash_migrations"],
        install_requires=[
            "pyyaml>=3.13",
            "prometheus-client",
            "logstash-formatter",
            "watchtower",
            "boto3",
        ],
        extras_require={"tests": ["coverage", "flake8", "pytest", "pytest-mock"]},
        entry_points={"console_scripts": ["squash-migrations = squash_migrations:cli"]},
        include_package_data=True,
    )
