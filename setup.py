from setuptools import find_packages, setup
from glob import glob
import os

package_name = 'blob_seeker'

setup(
    name=package_name,
    version='0.1.0',
    packages=find_packages(exclude=['test']),
    data_files=[
        ('share/ament_index/resource_index/packages',
            ['resource/' + package_name]),
        ('share/' + package_name, ['package.xml']),
        (os.path.join('share', package_name, 'launch'), glob('launch/*.launch.py')),
        (os.path.join('share', package_name, 'config'), glob('config/*.yaml')),
    ],
    install_requires=['setuptools', 'numpy', 'opencv-python'],
    zip_safe=True,
    maintainer='a',
    maintainer_email='a.bakumov@g.nsu.ru',
    description='Color goal seeking with depth and bumper obstacle avoidance',
    license='Apache-2.0',
    tests_require=['pytest'],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'goal_seeker = blob_seeker.controller:main',
            'blob_detector = blob_seeker.blob_detector:main',
        ],
    },
)
