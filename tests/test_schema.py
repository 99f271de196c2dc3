import pytest

from coco2yolo.errors import DataError
from coco2yolo.schema import Annotation, Category, Dataset, Image, parse_damm, parse_document, parse_standard


def test_parse_standard(standard_doc):
    ds = parse_standard(standard_doc)
    assert ds.images[1] == Image(1, "img001.jpg", 800, 600)
    assert ds.annotations == [Annotation(1, 3, (100.0, 50.0, 200.0, 150.0))]
    assert ds.class_index() == {1: 0, 3: 1}
    assert ds.class_names() == ["cage", "mouse"]


def test_parse_standard_without_categories_synthesizes_names(standard_doc):
    del standard_doc["categories"]
    ds = parse_standard(standard_doc)
    assert ds.categories == {3: Category(3, "class_3")}


def test_parse_standard_skips_malformed_records(standard_doc):
    standard_doc["annotations"].append({"id": 11, "image_id": 1, "category_id": 3, "bbox": [1, 2, 3]})
    standard_doc["images"].append({"id": 9})
    ds = parse_standard(standard_doc)
    assert len(ds.annotations) == 1
    assert ds.annotations_dropped == 1
    assert ds.images_skipped == 1


def test_parse_damm_converts_corners(damm_doc):
    ds = parse_damm(damm_doc)
    assert set(ds.images) == {7, 8}
    assert ds.images[7].file_name == "frames/a.jpg"
    assert ds.annotations[0] == Annotation(7, 0, (10.0, 5.0, 20.0, 20.0))
    assert ds.annotations[1].bbox == (0.0, 0.0, 100.0, 50.0)
    assert ds.class_names() == ["class_0", "class_2"]


def test_parse_damm_xywh_mode_and_unknown_mode(damm_doc):
    nested = damm_doc["annotations"][0]["annotations"]
    nested[0]["bbox_mode"] = "BoxMode.XYWH_ABS"
    nested[1]["bbox_mode"] = "BoxMode.XYWHA_ABS"
    ds = parse_damm(damm_doc)
    assert [a.bbox for a in ds.annotations] == [(10.0, 5.0, 30.0, 25.0)]
    assert ds.annotations_dropped == 1


@pytest.mark.parametrize("doc", [[], {"images": []}, {"annotations": {}}])
def test_wrong_document_shape_raises(doc):
    with pytest.raises(DataError):
        parse_damm(doc)


def test_standard_requires_images_and_annotations():
    with pytest.raises(DataError):
        parse_standard({"annotations": []})


def test_parse_document_rejects_unknown_format(standard_doc):
    with pytest.raises(ValueError):
        parse_document(standard_doc, "voc")


def test_merge_keeps_first_on_conflict():
    a = Dataset(images={1: Image(1, "a.jpg", 10, 10)}, categories={0: Category(0, "cat")})
    b = Dataset(
        images={1: Image(1, "b.jpg", 10, 10), 2: Image(2, "c.jpg", 10, 10)},
        categories={0: Category(0, "dog"), 1: Category(1, "bird")},
        annotations=[Annotation(2, 1, (0, 0, 1, 1)), Annotation(1, 0, (5, 5, 4, 4))],
    )
    a.merge(b)
    assert a.images[1].file_name == "a.jpg"
    assert set(a.images) == {1, 2}
    assert a.categories[0].name == "cat"
    assert a.class_names() == ["cat", "bird"]
    assert a.images_skipped == 1
    # The box belonged to the rejected b.jpg, not to a.jpg.
    assert a.annotations == [Annotation(2, 1, (0, 0, 1, 1))]
    assert a.annotations_dropped == 1


def test_merge_identical_records_is_silent():
    img = Image(1, "a.jpg", 10, 10)
    a = Dataset(images={1: img})
    a.merge(Dataset(images={1: img}))
    assert a.images_skipped == 0


def test_annotations_by_image_drops_dangling_references():
    ds = Dataset(
        images={1: Image(1, "a.jpg", 10, 10), 2: Image(2, "b.jpg", 10, 10)},
        categories={0: Category(0, "x")},
        annotations=[
            Annotation(1, 0, (0, 0, 1, 1)),
            Annotation(5, 0, (0, 0, 1, 1)),
            Annotation(1, 4, (0, 0, 1, 1)),
        ],
    )
    grouped = ds.annotations_by_image()
    assert grouped == {1: [Annotation(1, 0, (0, 0, 1, 1))], 2: []}
    assert ds.annotations_dropped == 2


def test_categories_must_be_a_list(standard_doc):
    standard_doc["categories"] = 5
    with pytest.raises(DataError, match="categories"):
        parse_standard(standard_doc)
