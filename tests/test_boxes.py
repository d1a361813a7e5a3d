from stabletrack.utils.boxes import clip_box, scale_boxes, xyxy_to_yxyx, yxyx_to_xyxy_int


def test_scale_boxes_from_detector_input_to_frame():
    boxes = scale_boxes([[24.0, 32.0, 120.0, 160.0]], src_size=(320, 240), dst_size=(640, 480))
    assert boxes == [[48.0, 64.0, 240.0, 320.0]]


def test_box_layout_conversions():
    assert xyxy_to_yxyx([1, 2, 3, 4]) == [2.0, 1.0, 4.0, 3.0]
    assert yxyx_to_xyxy_int([2.4, 1.6, 4.5, 3.2]) == (2, 2, 3, 4)


def test_clip_box_to_frame():
    assert clip_box([-5, 10, 500, 700], (640, 480)) == [0.0, 10, 480, 640]
