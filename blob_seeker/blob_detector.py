import rclpy
from rclpy.node import Node
from cv_bridge import CvBridge
from sensor_msgs.msg import Image
from std_msgs.msg import Float32MultiArray, MultiArrayDimension

from .config import SeekerConfig
from .segmentation import ColorClass, ColorFileError, find_blobs, load_color_file
from .wire import BLOB_FIELDS, blob_frame_to_array


class BlobDetector(Node):
    """Узел выделения цветных блобов на RGB-кадре.

    Замена CMVision: пороги классов цвета читаются из файла в формате
    colors.txt, найденные блобы публикуются массивом
    [red, green, blue, x, y, area] на каждый блоб.
    """

    def __init__(self):
        super().__init__('blob_detector')
        # Мост для конвертации между ROS Image и OpenCV форматами
        self.bridge = CvBridge()

        # Путь к файлу цветов CMVision; пустая строка - один класс по умолчанию
        self.declare_parameter('color_file', '')
        # Пороги YUV класса по умолчанию
        self.declare_parameter('default_lower', [127, 142, 175])
        self.declare_parameter('default_upper', [187, 161, 197])
        self.declare_parameter('default_color', list(SeekerConfig().target_color))
        # Минимальная площадь блоба в пикселях (отсев шума)
        self.declare_parameter('min_area', 20)

        self.classes = self.load_classes()
        self.min_area = int(self.get_parameter('min_area').value)

        # Подписка на RGB-поток камеры и издатель блобов
        self.sub = self.create_subscription(Image, '/camera/rgb/image_raw', self.cb_image, 10)
        self.pub_blobs = self.create_publisher(Float32MultiArray, '/blobs', 50)

        names = ', '.join(c.name for c in self.classes)
        self.get_logger().info(f"Blob detector tracking classes: {names}")

    def load_classes(self):
        path = self.get_parameter('color_file').value
        if path:
            return load_color_file(path)
        return [ColorClass(
            'TARGET',
            tuple(int(v) for v in self.get_parameter('default_color').value),
            tuple(int(v) for v in self.get_parameter('default_lower').value),
            tuple(int(v) for v in self.get_parameter('default_upper').value),
        )]

    def cb_image(self, msg: Image):
        try:
            bgr = self.bridge.imgmsg_to_cv2(msg, desired_encoding='bgr8')
        except Exception as e:
            self.get_logger().warn(f"Color CvBridge error: {e}")
            return

        frame = find_blobs(bgr, self.classes, self.min_area)

        out = Float32MultiArray()
        out.layout.dim = [
            MultiArrayDimension(label='blobs', size=frame.count, stride=frame.count * BLOB_FIELDS),
            MultiArrayDimension(label='fields', size=BLOB_FIELDS, stride=BLOB_FIELDS),
        ]
        out.data = blob_frame_to_array(frame)
        self.pub_blobs.publish(out)


def main(args=None):
    rclpy.init(args=args)
    try:
        node = BlobDetector()
    except ColorFileError as e:
        rclpy.logging.get_logger('blob_detector').fatal(f"Invalid configuration: {e}")
        rclpy.shutdown()
        raise SystemExit(1)

    try:
        rclpy.spin(node)
    except KeyboardInterrupt:
        pass
    node.destroy_node()
    rclpy.shutdown()


if __name__ == '__main__':
    main()
