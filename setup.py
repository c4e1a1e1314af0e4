import os
from glob import glob

from setuptools import setup, find_packages

package_name = 'motion_goal_bridge'

setup(
    name=package_name,
    version='1.0.0',
    packages=find_packages(exclude=['test']),
    data_files=[
        ('share/ament_index/resource_index/packages',
            ['resource/' + package_name]),
        ('share/' + package_name, ['package.xml']),
        (os.path.join('share', package_name, 'launch'), glob('launch/*.launch.py')),
        (os.path.join('share', package_name, 'config'), glob('config/*.yaml')),
    ],
    install_requires=['setuptools', 'numpy'],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=True,
    maintainer='Alexander',
    maintainer_email='alexander@example.com',
    description='Goal-driven MoveIt motion execution bridge with sensor obstacle updates',
    license='Apache-2.0',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'motion_goal_server = motion_goal_bridge.motion_goal_server:main',
            'goal_client = motion_goal_bridge.goal_client:main',
        ],
    },
)
