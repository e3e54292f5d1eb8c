from setuptools import setup, find_namespace_packages


setup(
    name='zcurve_core',
    version='0.1',
    packages=find_namespace_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        'flask>=2.2',
        'flask-openapi3>=3.0',
        'pydantic>=2.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'zcurve_core = zcurve_core.main:main',
        ],
    },
)
