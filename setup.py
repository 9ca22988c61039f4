import setuptools

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setuptools.setup(
    author="Sui Python SDK Contributors",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    include_package_data=True,
    install_requires=["base58", "pynacl", "typing_extensions"],
    long_description=long_description,
    long_description_content_type="text/markdown",
    name="sui_sdk",
    packages=["sui_sdk"],
    python_requires=">=3.8",
    version="0.1.0",
)
