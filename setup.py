from setuptools import setup, find_packages

setup(
    name='tabwright',
    version='0.1.0',
    license="Apache 2.0",
    description="tabwright: a loopback control plane for a local Chromium browser",
    long_description=open('README.md').read(),  # Ensure the README.md exists and is correct
    long_description_content_type='text/markdown',  # Use 'text/markdown' for Markdown files
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "aiohttp>=3.9",
        "click>=8.0",
        "fastapi>=0.100",
        "Pillow>=10.0",
        "playwright>=1.63",
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "uvicorn>=0.23",
    ],
    extras_require={
        'test': [
            "httpx>=0.24",
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        'console_scripts': [
            'tabwright-server=tabwright.command.tabwright_server:run',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.9',
)
